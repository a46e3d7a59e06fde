import pytest

from fakes import make_http_error
from gforms.cleaner import clean_schema
from gforms.errors import (
    AuthError,
    AuthErrorKind,
    RateLimitError,
    RemoteRequestError,
    SchemaError,
    SubmissionError,
)
from gforms.schema import FormSchema
from gforms.submission import FormSubmitter, SubmissionPolicy, chunk_requests

RATE_LIMITED = {
    "error": {
        "code": 429,
        "message": "Quota exceeded",
        "status": "RESOURCE_EXHAUSTED",
    }
}


def _sent_requests(forms_service, call: int = 0):
    return forms_service.calls_to("batchUpdate")[call]["kwargs"]["body"]["requests"]


def _schema(field_count: int = 3) -> FormSchema:
    return clean_schema(
        {
            "title": "Team Survey",
            "description": "Quarterly pulse",
            "fields": [{"label": f"Question {i}"} for i in range(field_count)],
        }
    )


@pytest.fixture
def submitter(forms_client, session, fake_sleep):
    return FormSubmitter(forms_client, session, SubmissionPolicy(), sleep=fake_sleep)


@pytest.mark.asyncio
async def test_submit_creates_shell_then_populates(
    submitter, forms_service, recorded_sleeps
) -> None:
    created = await submitter.submit_form(_schema())

    create_body = forms_service.calls_to("create")[0]["kwargs"]["body"]
    assert create_body == {"info": {"title": "Team Survey"}}
    requests = _sent_requests(forms_service)
    assert requests[0] == {
        "updateFormInfo": {
            "info": {"description": "Quarterly pulse"},
            "updateMask": "description",
        }
    }
    assert [r["createItem"]["location"]["index"] for r in requests[1:]] == [0, 1, 2]
    methods = [c["method"] for c in forms_service.calls]
    assert methods == ["create", "batchUpdate", "get"]
    assert recorded_sleeps == []

    assert created.form_id == "form-123"
    assert created.responder_uri == (
        "https://docs.google.com/forms/d/e/form-123-public/viewform"
    )
    assert created.edit_url == "https://docs.google.com/forms/d/form-123/edit"
    assert created.status == "published"
    assert created.skipped_fields == []


@pytest.mark.asyncio
async def test_submit_authenticates_first(
    submitter, oauth_provider, forms_service
) -> None:
    await submitter.submit_form(_schema())

    assert oauth_provider.calls == 1
    assert forms_service.calls[0]["headers"]["Authorization"] == "Bearer token-abc"


@pytest.mark.asyncio
async def test_batches_are_sequential_with_cooldown(
    submitter, forms_service, recorded_sleeps
) -> None:
    await submitter.submit_form(_schema(250))

    batches = [_sent_requests(forms_service, n) for n in range(3)]
    assert len(forms_service.calls_to("batchUpdate")) == 3
    assert [len(b) for b in batches] == [100, 100, 51]
    indices = [
        r["createItem"]["location"]["index"]
        for b in batches
        for r in b
        if "createItem" in r
    ]
    assert indices == list(range(250))
    assert recorded_sleeps == [1.0, 1.0]


@pytest.mark.asyncio
async def test_failed_middle_batch_reports_partial_state(
    submitter, forms_service, recorded_sleeps
) -> None:
    invalid = {
        "error": {
            "code": 400,
            "message": "Invalid request",
            "status": "INVALID_ARGUMENT",
        }
    }
    forms_service.queue("batchUpdate", {"replies": []}, make_http_error(400, invalid))

    with pytest.raises(SubmissionError) as exc_info:
        await submitter.submit_form(_schema(250))

    error = exc_info.value
    assert error.form_id == "form-123"
    assert error.batches_succeeded == 1
    assert error.failed_batch_index == 1
    assert error.progress.batches_total == 3
    assert error.progress.batches_not_attempted == 1
    assert isinstance(error.cause, RemoteRequestError)
    assert error.cause.status == 400
    assert len(forms_service.calls_to("batchUpdate")) == 2
    assert forms_service.calls_to("get") == []
    assert recorded_sleeps == [1.0]
    assert error.to_dict()["details"]["batches_not_attempted"] == 1


@pytest.mark.asyncio
async def test_rate_limit_is_retried_with_backoff(
    submitter, forms_service, recorded_sleeps
) -> None:
    forms_service.queue(
        "batchUpdate",
        make_http_error(429, RATE_LIMITED),
        make_http_error(429, RATE_LIMITED),
    )

    created = await submitter.submit_form(_schema())

    assert created.form_id == "form-123"
    assert len(forms_service.calls_to("batchUpdate")) == 3
    assert recorded_sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_rate_limit_exhaustion_is_terminal(
    forms_client, session, forms_service, fake_sleep, recorded_sleeps
) -> None:
    submitter = FormSubmitter(
        forms_client,
        session,
        SubmissionPolicy(max_rate_limit_retries=2),
        sleep=fake_sleep,
    )
    forms_service.queue(
        "batchUpdate", *[make_http_error(429, RATE_LIMITED) for _ in range(3)]
    )

    with pytest.raises(SubmissionError) as exc_info:
        await submitter.submit_form(_schema())

    assert isinstance(exc_info.value.cause, RateLimitError)
    assert exc_info.value.batches_succeeded == 0
    assert exc_info.value.failed_batch_index == 0
    assert len(forms_service.calls_to("batchUpdate")) == 3
    assert recorded_sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_create_failure_is_not_retried(submitter, forms_service) -> None:
    forms_service.queue("create", make_http_error(429, RATE_LIMITED))

    with pytest.raises(SubmissionError) as exc_info:
        await submitter.submit_form(_schema())

    assert exc_info.value.form_id is None
    assert len(forms_service.calls_to("create")) == 1
    assert forms_service.calls_to("batchUpdate") == []


@pytest.mark.asyncio
async def test_auth_failure_stops_before_any_remote_call(
    submitter, oauth_provider, forms_service
) -> None:
    oauth_provider.error = AuthError(AuthErrorKind.POPUP_BLOCKED)

    with pytest.raises(AuthError) as exc_info:
        await submitter.submit_form(_schema())

    assert exc_info.value.auth_kind is AuthErrorKind.POPUP_BLOCKED
    assert forms_service.calls == []


@pytest.mark.asyncio
async def test_uncleaned_input_is_rejected(submitter, forms_service) -> None:
    with pytest.raises(SchemaError):
        await submitter.submit_form({"title": "T", "fields": [{"label": "A"}]})

    assert forms_service.calls == []


@pytest.mark.asyncio
async def test_pre_send_validation_failure_skips_the_call(
    submitter, forms_service, monkeypatch
) -> None:
    monkeypatch.setattr(
        "gforms.submission.validate_batch_requests",
        lambda requests: ["Request 0: Item title is required"],
    )

    with pytest.raises(SubmissionError) as exc_info:
        await submitter.submit_form(_schema())

    assert isinstance(exc_info.value.cause, RemoteRequestError)
    assert exc_info.value.cause.status is None
    assert forms_service.calls_to("batchUpdate") == []


@pytest.mark.asyncio
async def test_skipped_fields_are_reported(submitter, forms_service) -> None:
    schema = FormSchema.model_validate(
        {
            "title": "T",
            "fields": [
                {"id": "name", "label": "Name", "type": "text"},
                {"id": "site", "label": "Website", "type": "url"},
            ],
        }
    )

    created = await submitter.submit_form(schema)

    assert [s["field_id"] for s in created.skipped_fields] == ["site"]
    assert len(_sent_requests(forms_service)) == 1


@pytest.mark.asyncio
async def test_responder_uri_falls_back_when_read_back_fails(
    submitter, forms_service
) -> None:
    forms_service.queue("get", make_http_error(500))

    created = await submitter.submit_form(_schema())

    assert created.responder_uri == (
        "https://docs.google.com/forms/d/form-123/viewform"
    )


def test_backoff_delay_is_capped() -> None:
    policy = SubmissionPolicy()

    assert [policy.backoff_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]
    assert policy.backoff_delay(10) == 60.0
    assert policy.backoff_delay(0, retry_after=5) == 5
    assert policy.backoff_delay(0, retry_after=90) == 60.0


def test_chunk_requests() -> None:
    assert [len(c) for c in chunk_requests(list(range(250)))] == [100, 100, 50]
    assert chunk_requests([]) == []
    with pytest.raises(ValueError):
        chunk_requests([1], batch_size=101)


@pytest.mark.asyncio
async def test_collect_email_is_applied_after_the_items(
    submitter, forms_service
) -> None:
    schema = clean_schema(
        {
            "title": "Team Survey",
            "fields": [{"label": "Name"}, {"label": "Role"}],
            "settings": {"collect_email": True},
        }
    )

    await submitter.submit_form(schema)

    requests = _sent_requests(forms_service)
    kinds = [next(iter(r)) for r in requests]
    assert kinds == ["createItem", "createItem", "updateSettings"]
    assert requests[-1]["updateSettings"]["settings"] == {
        "emailCollectionType": "RESPONDER_INPUT"
    }
