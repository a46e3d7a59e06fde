"""
Error taxonomy for schema cleaning, authentication and form submission.

Every terminal error carries a kind, a human readable message and, where it
makes sense, a path or structured details, so callers can render something
actionable without digging through tracebacks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FormsError(Exception):
    """Base class for all errors raised by the form pipeline."""

    kind = "error"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.path:
            payload["path"] = self.path
        extra = self.details()
        if extra:
            payload["details"] = extra
        return payload


class SchemaError(FormsError):
    """A candidate schema is structurally unrecoverable."""

    def __init__(self, kind: str, detail: str, path: Optional[str] = None):
        super().__init__(detail, path)
        self.kind = kind
        self.detail = detail


SchemaStructureError = SchemaError


@dataclass(frozen=True)
class FieldIncompatibility:
    """Warning-level: a field was left out because Google Forms cannot host it."""

    field_id: str
    field_type: str
    label: str = ""
    index: int = -1

    @property
    def message(self) -> str:
        return f"Field '{self.field_id}' has type '{self.field_type}' which Google Forms does not support; skipped"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "field_incompatibility",
            "field_id": self.field_id,
            "field_type": self.field_type,
            "label": self.label,
            "index": self.index,
            "message": self.message,
        }


class AuthErrorKind(str, Enum):
    POPUP_BLOCKED = "popup_blocked"
    CONSENT_DECLINED = "consent_declined"
    INVALID_CLIENT_CONFIG = "invalid_client_config"
    NOT_AUTHENTICATED = "not_authenticated"
    UNKNOWN = "unknown"


AUTH_ERROR_MESSAGES = {
    AuthErrorKind.POPUP_BLOCKED: "The consent window could not be opened. Allow popups or a browser for this app and try again.",
    AuthErrorKind.CONSENT_DECLINED: "Authentication was cancelled. Please try again.",
    AuthErrorKind.INVALID_CLIENT_CONFIG: "Invalid client configuration. Please check your Google Client ID.",
    AuthErrorKind.NOT_AUTHENTICATED: "Not authenticated with Google",
    AuthErrorKind.UNKNOWN: "Authentication error",
}


class AuthError(FormsError):
    """Authentication failed or is missing; never retried automatically."""

    kind = "auth_error"

    def __init__(self, auth_kind: AuthErrorKind, message: Optional[str] = None):
        super().__init__(message or AUTH_ERROR_MESSAGES[auth_kind])
        self.auth_kind = auth_kind

    def details(self) -> Dict[str, Any]:
        return {"auth_kind": self.auth_kind.value}


class ProviderConfigError(FormsError):
    """The LLM provider is not configured well enough to be called."""

    kind = "provider_config_error"


class LLMProviderError(FormsError):
    """The LLM provider answered with an error."""

    kind = "llm_provider_error"

    def __init__(self, provider: str, message: str, status: Optional[int] = None):
        if status:
            super().__init__(f"{provider} API error: {status} - {message}")
        else:
            super().__init__(f"{provider} API error: {message}")
        self.provider = provider
        self.status = status

    def details(self) -> Dict[str, Any]:
        return {"provider": self.provider, "status": self.status}


class RateLimitError(FormsError):
    """The Forms API asked us to slow down."""

    kind = "rate_limit"

    def __init__(
        self, message: str = "Rate limit exceeded", retry_after: Optional[float] = None
    ):
        super().__init__(message)
        self.retry_after = retry_after

    def details(self) -> Dict[str, Any]:
        return {"retry_after": self.retry_after} if self.retry_after is not None else {}


@dataclass(frozen=True)
class FieldViolation:
    field: str
    description: str

    def __str__(self) -> str:
        return f"Field '{self.field}': {self.description}"


class RemoteRequestError(FormsError):
    """A Forms API call failed for a reason other than rate limiting."""

    kind = "remote_request_error"

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        field_violations: Optional[List[FieldViolation]] = None,
        reason: Optional[str] = None,
    ):
        self.status = status
        self.field_violations = list(field_violations or [])
        self.reason = reason
        if self.field_violations:
            details = "; ".join(str(v) for v in self.field_violations)
            message = f"{message}. Details: {details}"
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status}
        if self.reason:
            payload["reason"] = self.reason
        if self.field_violations:
            payload["field_violations"] = [
                {"field": v.field, "description": v.description}
                for v in self.field_violations
            ]
        return payload


@dataclass
class SubmissionProgress:
    """How far a submission got before it stopped."""

    form_id: Optional[str] = None
    batches_total: int = 0
    batches_succeeded: int = 0
    failed_batch_index: Optional[int] = None
    skipped_fields: List[FieldIncompatibility] = field(default_factory=list)

    @property
    def batches_not_attempted(self) -> int:
        attempted = self.batches_succeeded
        if self.failed_batch_index is not None:
            attempted += 1
        return max(self.batches_total - attempted, 0)


class SubmissionError(FormsError):
    """Terminal failure of a form submission, with the partial state attached."""

    kind = "submission_error"

    def __init__(
        self,
        message: str,
        progress: SubmissionProgress,
        cause: Optional[FormsError] = None,
    ):
        super().__init__(message)
        self.progress = progress
        self.cause = cause

    @property
    def form_id(self) -> Optional[str]:
        return self.progress.form_id

    @property
    def failed_batch_index(self) -> Optional[int]:
        return self.progress.failed_batch_index

    @property
    def batches_succeeded(self) -> int:
        return self.progress.batches_succeeded

    def details(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "form_id": self.progress.form_id,
            "batches_total": self.progress.batches_total,
            "batches_succeeded": self.progress.batches_succeeded,
            "failed_batch_index": self.progress.failed_batch_index,
            "batches_not_attempted": self.progress.batches_not_attempted,
        }
        if self.cause is not None:
            payload["cause"] = self.cause.to_dict()
        return payload
