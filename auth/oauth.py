"""
OAuth providers: the one place that talks to Google's consent flow.

A provider turns "give me a token for these scopes" into either an OAuthToken
or an AuthError whose kind says what went wrong.
"""

import asyncio
import logging
import webbrowser
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749 import errors as oauth_errors

from gforms.errors import AuthError, AuthErrorKind

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_TOKEN_TTL_SECONDS = 3600


@dataclass(frozen=True)
class OAuthToken:
    access_token: str
    expires_in: float


def classify_oauth_failure(error: BaseException) -> AuthErrorKind:
    """Map a consent-flow exception onto the auth error kinds callers handle."""
    if isinstance(error, AuthError):
        return error.auth_kind
    if isinstance(error, webbrowser.Error):
        return AuthErrorKind.POPUP_BLOCKED
    if isinstance(
        error, (oauth_errors.AccessDeniedError, oauth_errors.ConsentRequired)
    ):
        return AuthErrorKind.CONSENT_DECLINED
    if isinstance(
        error,
        (
            oauth_errors.InvalidClientError,
            oauth_errors.InvalidClientIdError,
            oauth_errors.UnauthorizedClientError,
        ),
    ):
        return AuthErrorKind.INVALID_CLIENT_CONFIG
    if isinstance(error, ValueError) and "client" in str(error).lower():
        return AuthErrorKind.INVALID_CLIENT_CONFIG
    return AuthErrorKind.UNKNOWN


class OAuthProvider(ABC):
    """Requests an access token through user consent."""

    @abstractmethod
    async def request_token(self, scopes: List[str]) -> OAuthToken:
        """
        Ask the user for consent and return a fresh token.

        Raises:
            AuthError: classified failure of the consent flow.
        """


class InstalledAppOAuthProvider(OAuthProvider):
    """
    Consent through the local-server installed-app flow.

    A browser window is opened on Google's consent page and a loopback server
    receives the redirect. Consent is always re-prompted.
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        client_secrets_file: Optional[str] = None,
        open_browser: bool = True,
        timeout_seconds: Optional[int] = 300,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.client_secrets_file = client_secrets_file
        self.open_browser = open_browser
        self.timeout_seconds = timeout_seconds

    def _client_config(self) -> Dict[str, Any]:
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }

    def _build_flow(self, scopes: List[str]) -> InstalledAppFlow:
        if self.client_secrets_file:
            return InstalledAppFlow.from_client_secrets_file(
                self.client_secrets_file, scopes=scopes
            )
        if not self.client_id:
            raise AuthError(
                AuthErrorKind.INVALID_CLIENT_CONFIG,
                "Google Client ID is required. Set GOOGLE_CLIENT_ID or GOOGLE_CLIENT_SECRETS_FILE",
            )
        return InstalledAppFlow.from_client_config(self._client_config(), scopes=scopes)

    def _run_consent(self, scopes: List[str]) -> OAuthToken:
        flow = self._build_flow(scopes)
        credentials = flow.run_local_server(
            port=0,
            open_browser=self.open_browser,
            prompt="consent",
            timeout_seconds=self.timeout_seconds,
        )
        if credentials is None or not credentials.token:
            raise AuthError(
                AuthErrorKind.UNKNOWN,
                "Authentication failed - no access token received",
            )

        expires_in = float(DEFAULT_TOKEN_TTL_SECONDS)
        if credentials.expiry is not None:
            # google-auth keeps expiry as naive UTC
            expiry = credentials.expiry.replace(tzinfo=timezone.utc)
            expires_in = max((expiry - datetime.now(timezone.utc)).total_seconds(), 0.0)
        return OAuthToken(access_token=credentials.token, expires_in=expires_in)

    async def request_token(self, scopes: List[str]) -> OAuthToken:
        try:
            return await asyncio.to_thread(self._run_consent, scopes)
        except AuthError:
            raise
        except Exception as e:
            kind = classify_oauth_failure(e)
            logger.error(f"[request_token] Consent flow failed ({kind.value}): {e}")
            raise AuthError(kind, f"{AuthError(kind).message} ({e})") from e
