"""
Authentication session owning the Google bearer token.

State machine:

    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED -> EXPIRED
           ^                  |                |
           +---- failure -----+---- clear() ---+

No other component reads the token; the Forms client asks for headers via
authorized_headers(), which fails fast when the session is not usable. The
session never refreshes silently: an expired token needs a new consent.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional

from auth.oauth import OAuthProvider
from gforms.errors import AuthError, AuthErrorKind

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class AuthSession:
    def __init__(
        self,
        provider: OAuthProvider,
        scopes: List[str],
        clock: Callable[[], float] = time.time,
    ):
        self._provider = provider
        self._scopes = list(scopes)
        self._clock = clock
        self._access_token: Optional[str] = None
        self._expiry: Optional[float] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def scopes(self) -> List[str]:
        return list(self._scopes)

    @property
    def expiry(self) -> Optional[float]:
        return self._expiry

    @property
    def state(self) -> AuthState:
        if self._pending is not None and not self._pending.done():
            return AuthState.AUTHENTICATING
        if self._access_token is None or self._expiry is None:
            return AuthState.UNAUTHENTICATED
        if self._clock() >= self._expiry:
            return AuthState.EXPIRED
        return AuthState.AUTHENTICATED

    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED

    async def authenticate(self) -> None:
        """
        Make sure the session holds a live token, prompting for consent if not.

        Concurrent callers share one consent attempt. A failed attempt leaves
        the session unauthenticated and raises the classified AuthError to
        every waiting caller.
        """
        if self.is_authenticated():
            return
        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._run_authentication())
        else:
            logger.debug("[authenticate] Joining consent attempt already in flight")
        # Shield so one cancelled waiter does not abort the shared attempt
        await asyncio.shield(self._pending)

    async def _run_authentication(self) -> None:
        self._access_token = None
        self._expiry = None
        logger.info(
            f"[authenticate] Requesting consent for scopes: {', '.join(self._scopes)}"
        )
        try:
            token = await self._provider.request_token(self._scopes)
        except AuthError as e:
            logger.warning(f"[authenticate] Authentication failed: {e.auth_kind.value}")
            raise
        except Exception as e:
            logger.error(f"[authenticate] Unexpected authentication failure: {e}")
            raise AuthError(AuthErrorKind.UNKNOWN, f"Authentication error: {e}") from e

        if not token.access_token:
            raise AuthError(
                AuthErrorKind.UNKNOWN,
                "Authentication failed - no access token received",
            )
        self._access_token = token.access_token
        self._expiry = self._clock() + float(token.expires_in)
        logger.info("[authenticate] Google authentication successful")

    def authorized_headers(self) -> Dict[str, str]:
        """
        Headers for an authenticated Forms API call.

        Raises:
            AuthError: kind NOT_AUTHENTICATED when there is no live token.
        """
        state = self.state
        if state is AuthState.EXPIRED:
            raise AuthError(
                AuthErrorKind.NOT_AUTHENTICATED,
                "Google session expired; please authenticate again",
            )
        if state is not AuthState.AUTHENTICATED:
            raise AuthError(AuthErrorKind.NOT_AUTHENTICATED)
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

    def clear(self) -> None:
        """Forget the token."""
        self._access_token = None
        self._expiry = None
        logger.info("[clear] Authentication state cleared")
