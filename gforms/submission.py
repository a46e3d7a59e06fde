"""
Submission of a cleaned schema as a real Google Form.

The form shell is created with its title, then the translated operations are
sent in batches of at most 100, strictly one after another because item
location indices in later batches assume earlier batches have landed. Only
rate limiting is retried. Google offers no form deletion, so a failure after
the shell exists leaves a partial form and the error says how far it got.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from auth.session import AuthSession
from gforms.client import FormsApiClient
from gforms.errors import (
    FormsError,
    RateLimitError,
    RemoteRequestError,
    SchemaError,
    SubmissionError,
    SubmissionProgress,
)
from gforms.schema import CreatedForm, FormSchema, edit_url_for, responder_url_for
from gforms.translator import translate, translate_settings, validate_batch_requests

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100


@dataclass(frozen=True)
class SubmissionPolicy:
    batch_size: int = MAX_BATCH_SIZE
    cooldown_seconds: float = 1.0
    max_rate_limit_retries: int = 5
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 60.0

    def backoff_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Exponential delay for the given zero-based retry attempt, capped."""
        delay = self.backoff_base_seconds * (2 ** attempt)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return min(delay, self.backoff_max_seconds)


def chunk_requests(
    requests: List[Dict[str, Any]], batch_size: int = MAX_BATCH_SIZE
) -> List[List[Dict[str, Any]]]:
    """Split requests into consecutive batches; the API takes at most 100 per call."""
    if batch_size < 1 or batch_size > MAX_BATCH_SIZE:
        raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
    return [
        requests[i : i + batch_size] for i in range(0, len(requests), batch_size)
    ]


class FormSubmitter:
    """Creates Google Forms from cleaned schemas."""

    def __init__(
        self,
        client: FormsApiClient,
        session: AuthSession,
        policy: Optional[SubmissionPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.session = session
        self.policy = policy or SubmissionPolicy()
        self._sleep = sleep

    async def _execute_batch(
        self, form_id: str, batch: List[Dict[str, Any]], label: str
    ) -> None:
        problems = validate_batch_requests(batch)
        if problems:
            logger.error(f"[submit_form] {label} failed local validation: {problems}")
            raise RemoteRequestError(
                f"Invalid batch requests: {', '.join(problems)}"
            )

        attempt = 0
        while True:
            try:
                await self.client.batch_update(form_id, batch)
                return
            except RateLimitError as e:
                if attempt >= self.policy.max_rate_limit_retries:
                    logger.error(
                        f"[submit_form] {label} still rate limited after {attempt} retries"
                    )
                    raise
                delay = self.policy.backoff_delay(attempt, e.retry_after)
                attempt += 1
                logger.warning(
                    f"[submit_form] {label} rate limited; retry "
                    f"{attempt}/{self.policy.max_rate_limit_retries} in {delay:.1f}s"
                )
                await self._sleep(delay)

    async def _responder_uri(self, form_id: str) -> str:
        try:
            form = await self.client.get_form(form_id)
        except FormsError as e:
            # The form is complete at this point; only the link lookup failed
            logger.warning(
                f"[submit_form] Could not read back form {form_id}: {e.message}"
            )
            return responder_url_for(form_id)
        return form.get("responderUri") or responder_url_for(form_id)

    async def submit_form(self, schema: FormSchema) -> CreatedForm:
        """
        Create a Google Form from a cleaned schema.

        Args:
            schema: Output of clean_schema, possibly edited.

        Returns:
            CreatedForm: ids and links of the new form, plus any skipped fields.

        Raises:
            AuthError: authentication failed before anything was created.
            SchemaError: the schema is not a non-empty FormSchema.
            SubmissionError: a remote call failed; progress says what exists.
        """
        await self.session.authenticate()

        if not isinstance(schema, FormSchema):
            raise SchemaError(
                "invalid_schema", "submit_form expects a cleaned FormSchema"
            )
        if not schema.fields:
            raise SchemaError(
                "no_fields", "At least one form field is required", path="fields"
            )
        if not schema.title.strip():
            raise SchemaError("missing_title", "Form title is required", path="title")

        logger.info(
            f"[submit_form] Creating form '{schema.title}' "
            f"with {len(schema.fields)} fields"
        )
        progress = SubmissionProgress()

        try:
            created = await self.client.create_form(schema.title)
        except FormsError as e:
            raise SubmissionError(
                f"Failed to create Google Form: {e.message}", progress, cause=e
            ) from e
        form_id = created.get("formId")
        if not form_id:
            error = RemoteRequestError(
                "Failed to create form: response carried no formId"
            )
            raise SubmissionError(error.message, progress, cause=error)
        progress.form_id = form_id

        translation = translate(schema, include_title=False)
        progress.skipped_fields = list(translation.skipped)
        requests = translation.to_requests()
        requests.extend(op.to_request() for op in translate_settings(schema.settings))
        batches = chunk_requests(requests, self.policy.batch_size)
        progress.batches_total = len(batches)

        for index, batch in enumerate(batches):
            label = f"Batch {index + 1}/{len(batches)}"
            if index > 0:
                logger.debug(
                    f"[submit_form] Cooling down {self.policy.cooldown_seconds}s "
                    f"before {label}"
                )
                await self._sleep(self.policy.cooldown_seconds)
            logger.info(
                f"[submit_form] {label}: sending {len(batch)} requests to form {form_id}"
            )
            try:
                await self._execute_batch(form_id, batch, label)
            except FormsError as e:
                progress.failed_batch_index = index
                logger.error(
                    f"[submit_form] {label} failed for form {form_id}; "
                    f"{progress.batches_succeeded} succeeded, "
                    f"{progress.batches_not_attempted} not attempted"
                )
                raise SubmissionError(
                    f"Form {form_id} was created but batch {index + 1} "
                    f"of {len(batches)} failed: {e.message}",
                    progress,
                    cause=e,
                ) from e
            progress.batches_succeeded += 1

        responder_uri = await self._responder_uri(form_id)
        logger.info(f"[submit_form] Form created successfully. ID: {form_id}")
        return CreatedForm(
            form_id=form_id,
            responder_uri=responder_uri,
            edit_url=edit_url_for(form_id),
            skipped_fields=[s.to_dict() for s in translation.skipped],
        )
