"""
Thin async client over the Google Forms v1 API.

Calls go through googleapiclient request objects, executed on a worker
thread. The bearer token is never handed to the client: each request gets its
headers from the AuthSession at call time.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional

import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from auth.session import AuthSession
from gforms.errors import FieldViolation, FormsError, RateLimitError, RemoteRequestError
from gforms.translator import build_settings_requests, validate_batch_requests

logger = logging.getLogger(__name__)

RATE_LIMIT_REASONS = {
    "rateLimitExceeded",
    "userRateLimitExceeded",
    "RATE_LIMIT_EXCEEDED",
}
UNTITLED_FORM = "Untitled Form"
# Largest page forms.responses.list accepts
ANALYTICS_PAGE_SIZE = 5000


def build_forms_service(http: Optional[httplib2.Http] = None):
    """
    Build the Forms discovery client without ambient credentials.

    Authorization is added per request, so the client gets a bare transport.
    """
    return build(
        "forms",
        "v1",
        http=http or httplib2.Http(),
        cache_discovery=False,
        static_discovery=True,
    )


# ============================================================================
# ERROR CLASSIFICATION
# ============================================================================


def _error_body(error: HttpError) -> Dict[str, Any]:
    content = error.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(content) if content else {}
    except (TypeError, ValueError):
        return {}
    body = parsed.get("error") if isinstance(parsed, dict) else None
    return body if isinstance(body, dict) else {}


def _field_violations(details: List[Any]) -> List[FieldViolation]:
    violations = []
    for detail in details:
        if not isinstance(detail, dict):
            continue
        for violation in detail.get("fieldViolations") or []:
            violations.append(
                FieldViolation(
                    field=str(violation.get("field", "")),
                    description=str(violation.get("description", "")),
                )
            )
    return violations


def _reasons(body: Dict[str, Any]) -> List[str]:
    reasons = []
    for key in ("errors", "details"):
        entries = body.get(key) or []
        reasons.extend(e.get("reason") for e in entries if isinstance(e, dict))
    return [r for r in reasons if r]


def _retry_after(error: HttpError) -> Optional[float]:
    value = error.resp.get("retry-after") if hasattr(error.resp, "get") else None
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


def classify_http_error(error: HttpError, operation: str = "request") -> FormsError:
    """
    Turn a googleapiclient HttpError into RateLimitError or RemoteRequestError.

    Field violations from the structured error body are kept so callers can
    point at the offending request.
    """
    status = int(error.resp.status)
    body = _error_body(error)
    message = body.get("message") or getattr(error, "reason", None) or f"HTTP {status}"
    reasons = _reasons(body)

    if status == 429 or body.get("status") == "RESOURCE_EXHAUSTED" or (
        status == 403 and RATE_LIMIT_REASONS.intersection(reasons)
    ):
        return RateLimitError(
            f"Rate limit exceeded during {operation}: {message}",
            retry_after=_retry_after(error),
        )

    return RemoteRequestError(
        f"Failed to {operation}: {message}",
        status=status,
        field_violations=_field_violations(body.get("details") or []),
        reason=reasons[0] if reasons else body.get("status"),
    )


# ============================================================================
# CLIENT
# ============================================================================


def _timestamp_key(timestamp: str):
    """Sort key for the API's UTC RFC 3339 timestamps, whose fraction width varies."""
    base, _, fraction = timestamp.rstrip("Z").partition(".")
    return base, float(f"0.{fraction}") if fraction else 0.0


class FormsApiClient:
    """
    Authenticated access to forms.create, forms.batchUpdate and forms.get.

    httplib2.Http is not thread-safe, so every request runs on its own
    transport from http_factory.
    """

    def __init__(
        self,
        service,
        session: AuthSession,
        http_factory: Callable[[], httplib2.Http] = httplib2.Http,
    ):
        self.service = service
        self.session = session
        self.http_factory = http_factory

    async def _execute(self, request, operation: str) -> Dict[str, Any]:
        request.headers.update(self.session.authorized_headers())
        try:
            return await asyncio.to_thread(request.execute, http=self.http_factory())
        except HttpError as e:
            classified = classify_http_error(e, operation)
            logger.error(f"[{operation}] {classified.message}")
            raise classified from e

    async def create_form(self, title: str) -> Dict[str, Any]:
        """Create an empty form carrying only its title. Returns the form resource."""
        body = {"info": {"title": title or UNTITLED_FORM}}
        return await self._execute(
            self.service.forms().create(body=body), "create form"
        )

    async def batch_update(
        self, form_id: str, requests: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        body = {"requests": requests, "includeFormInResponse": False}
        logger.debug(f"[batch_update] Form {form_id} payload: {json.dumps(body)}")
        return await self._execute(
            self.service.forms().batchUpdate(formId=form_id, body=body),
            "batch update form",
        )

    async def get_form(self, form_id: str) -> Dict[str, Any]:
        return await self._execute(
            self.service.forms().get(formId=form_id), "get form"
        )

    async def list_responses(
        self,
        form_id: str,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"formId": form_id}
        if page_size:
            params["pageSize"] = page_size
        if page_token:
            params["pageToken"] = page_token
        return await self._execute(
            self.service.forms().responses().list(**params), "get responses"
        )

    async def update_form_settings(
        self,
        form_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        collect_email: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Change an existing form's title, description or email collection.

        Returns:
            The form resource as read back after the update.
        """
        requests = build_settings_requests(title, description, collect_email)
        if requests:
            problems = validate_batch_requests(requests)
            if problems:
                raise RemoteRequestError(
                    f"Invalid settings update: {', '.join(problems)}"
                )
            await self.batch_update(form_id, requests)
        else:
            logger.info(f"[update_form_settings] Nothing to change for form {form_id}")
        return await self.get_form(form_id)

    async def get_form_analytics(self, form_id: str) -> Dict[str, Any]:
        """
        Response counts and timing for a form, read across every response page.
        """
        form = await self.get_form(form_id)
        responses: List[Dict[str, Any]] = []
        page_token = None
        while True:
            page = await self.list_responses(
                form_id, page_size=ANALYTICS_PAGE_SIZE, page_token=page_token
            )
            responses.extend(page.get("responses", []))
            page_token = page.get("nextPageToken")
            if not page_token:
                break

        created = [r["createTime"] for r in responses if r.get("createTime")]
        first = min(created, key=_timestamp_key) if created else None
        submitted = [
            r.get("lastSubmittedTime") or r.get("createTime")
            for r in responses
            if r.get("lastSubmittedTime") or r.get("createTime")
        ]
        last = max(submitted, key=_timestamp_key) if submitted else None
        return {
            "form_id": form_id,
            "title": form.get("info", {}).get("title", ""),
            "total_responses": len(responses),
            "first_response_time": first,
            "last_response_time": last,
            "responder_uri": form.get("responderUri"),
        }

    async def delete_form(self, form_id: str) -> bool:
        """
        The Forms API cannot delete forms (only Drive can trash them), so this
        is a no-op that reports False rather than dropping a local record that
        would then disagree with Google.
        """
        logger.warning(
            f"[delete_form] Google Forms API does not support form deletion; "
            f"form {form_id} left as is"
        )
        return False


def format_answers(answers: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten API answers to question_id -> text, file names or score."""
    formatted: Dict[str, Any] = {}
    for question_id, answer in answers.items():
        if answer.get("textAnswers"):
            texts = answer["textAnswers"].get("answers", [])
            formatted[question_id] = ", ".join(a.get("value", "") for a in texts)
        elif answer.get("fileUploadAnswers"):
            files = answer["fileUploadAnswers"].get("answers", [])
            formatted[question_id] = [a.get("fileName") for a in files]
        elif answer.get("grade"):
            formatted[question_id] = answer["grade"].get("score")
    return formatted


def format_responses(responses: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "id": response.get("responseId"),
            "submitted_at": response.get("lastSubmittedTime"),
            "answers": format_answers(response.get("answers") or {}),
            "metadata": {
                "create_time": response.get("createTime"),
                "last_submitted_time": response.get("lastSubmittedTime"),
            },
        }
        for response in responses
    ]
