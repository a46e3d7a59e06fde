"""Test doubles for the Forms discovery client and the OAuth consent flow."""

import asyncio
import json
from collections import defaultdict
from typing import Any, Dict, List, Optional

import httplib2
from googleapiclient.errors import HttpError

from auth.oauth import OAuthProvider, OAuthToken

FAKE_FORM_ID = "form-123"


def make_http_error(
    status: int,
    body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> HttpError:
    info = {"status": status}
    info.update(headers or {})
    content = json.dumps(body).encode("utf-8") if body is not None else b""
    return HttpError(httplib2.Response(info), content)


class FakeRequest:
    def __init__(
        self, service: "FakeFormsService", method: str, kwargs: Dict[str, Any]
    ):
        self.service = service
        self.method = method
        self.kwargs = kwargs
        self.headers: Dict[str, str] = {}

    def execute(self, http=None):
        self.service.calls.append(
            {
                "method": self.method,
                "kwargs": self.kwargs,
                "headers": dict(self.headers),
                "http": http,
            }
        )
        outcome = self.service.next_outcome(self.method)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class _ResponsesResource:
    def __init__(self, service: "FakeFormsService"):
        self.service = service

    def list(self, **kwargs):
        return FakeRequest(self.service, "responses.list", kwargs)


class _FormsResource:
    def __init__(self, service: "FakeFormsService"):
        self.service = service

    def create(self, body):
        return FakeRequest(self.service, "create", {"body": body})

    def batchUpdate(self, formId, body):
        return FakeRequest(
            self.service, "batchUpdate", {"formId": formId, "body": body}
        )

    def get(self, formId):
        return FakeRequest(self.service, "get", {"formId": formId})

    def responses(self):
        return _ResponsesResource(self.service)


class FakeFormsService:
    """Stands in for build('forms', 'v1'). Outcomes are queued per method."""

    def __init__(self, form_id: str = FAKE_FORM_ID):
        self.form_id = form_id
        self.calls: List[Dict[str, Any]] = []
        self._outcomes: Dict[str, List[Any]] = defaultdict(list)

    def queue(self, method: str, *outcomes: Any) -> None:
        self._outcomes[method].extend(outcomes)

    def next_outcome(self, method: str) -> Any:
        if self._outcomes[method]:
            return self._outcomes[method].pop(0)
        defaults = {
            "create": {"formId": self.form_id, "info": {"title": "Untitled"}},
            "batchUpdate": {"replies": []},
            "get": {
                "formId": self.form_id,
                "responderUri": f"https://docs.google.com/forms/d/e/{self.form_id}-public/viewform",
                "info": {"title": "Untitled"},
            },
            "responses.list": {"responses": []},
        }
        return defaults[method]

    def forms(self):
        return _FormsResource(self)

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method]


class FakeOAuthProvider(OAuthProvider):
    def __init__(self, token: str = "token-abc", expires_in: float = 3600):
        self.token = token
        self.expires_in = expires_in
        self.calls = 0
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def request_token(self, scopes: List[str]) -> OAuthToken:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return OAuthToken(access_token=self.token, expires_in=self.expires_in)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
