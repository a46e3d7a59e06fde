import logging
import webbrowser

import pytest
from oauthlib.oauth2.rfc6749 import errors as oauth_errors

from auth.oauth import InstalledAppOAuthProvider, classify_oauth_failure
from core.app import RequestLoggingMiddleware, create_app
from core.config import Settings
from core.logging_setup import configure_logging
from core.server import build_server
from core.services import build_services
from gforms.errors import AuthError, AuthErrorKind


@pytest.fixture
def server(oauth_provider, forms_service):
    services = build_services(
        Settings(), oauth_provider=oauth_provider, forms_service=forms_service
    )
    return build_server(services)


@pytest.mark.asyncio
async def test_server_lists_form_tools(server) -> None:
    names = {tool.name for tool in await server.list_tools()}

    assert {
        "generate_form_schema",
        "create_google_form",
        "list_google_form_responses",
    } <= names


def test_http_app_has_request_logging(server) -> None:
    app = create_app(server)

    assert any(m.cls is RequestLoggingMiddleware for m in app.user_middleware)


def test_configure_logging_installs_single_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug")
        configure_logging("warning")

        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


@pytest.mark.parametrize(
    "error, kind",
    [
        (
            webbrowser.Error("could not locate runnable browser"),
            AuthErrorKind.POPUP_BLOCKED,
        ),
        (oauth_errors.AccessDeniedError(), AuthErrorKind.CONSENT_DECLINED),
        (oauth_errors.InvalidClientError(), AuthErrorKind.INVALID_CLIENT_CONFIG),
        (
            ValueError("Client secrets must be for a web or installed app."),
            AuthErrorKind.INVALID_CLIENT_CONFIG,
        ),
        (OSError("port in use"), AuthErrorKind.UNKNOWN),
    ],
)
def test_classify_oauth_failure(error, kind) -> None:
    assert classify_oauth_failure(error) is kind


@pytest.mark.asyncio
async def test_installed_app_provider_needs_a_client() -> None:
    provider = InstalledAppOAuthProvider()

    with pytest.raises(AuthError) as exc_info:
        await provider.request_token(["https://www.googleapis.com/auth/forms.body"])

    assert exc_info.value.auth_kind is AuthErrorKind.INVALID_CLIENT_CONFIG


@pytest.mark.asyncio
async def test_installed_app_provider_wraps_flow_errors(monkeypatch) -> None:
    def blocked(self, scopes):
        raise webbrowser.Error("no browser")

    monkeypatch.setattr(InstalledAppOAuthProvider, "_run_consent", blocked)
    provider = InstalledAppOAuthProvider(client_id="id", client_secret="secret")

    with pytest.raises(AuthError) as exc_info:
        await provider.request_token(["scope"])

    assert exc_info.value.auth_kind is AuthErrorKind.POPUP_BLOCKED
