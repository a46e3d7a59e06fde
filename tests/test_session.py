import asyncio

import pytest

from auth.session import AuthState
from gforms.errors import AuthError, AuthErrorKind


@pytest.mark.asyncio
async def test_authenticate_records_token_and_expiry(
    session, oauth_provider, clock
) -> None:
    assert session.state is AuthState.UNAUTHENTICATED

    await session.authenticate()

    assert session.state is AuthState.AUTHENTICATED
    assert session.expiry == clock.now + 3600
    assert session.authorized_headers() == {
        "Authorization": "Bearer token-abc",
        "Content-Type": "application/json",
    }


@pytest.mark.asyncio
async def test_authenticate_is_noop_when_live(session, oauth_provider) -> None:
    await session.authenticate()
    await session.authenticate()

    assert oauth_provider.calls == 1


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_consent(session, oauth_provider) -> None:
    oauth_provider.gate = asyncio.Event()

    waiters = [asyncio.create_task(session.authenticate()) for _ in range(3)]
    await asyncio.sleep(0)
    assert session.state is AuthState.AUTHENTICATING

    oauth_provider.gate.set()
    await asyncio.gather(*waiters)

    assert oauth_provider.calls == 1
    assert session.is_authenticated()


@pytest.mark.asyncio
async def test_concurrent_callers_all_see_failure(session, oauth_provider) -> None:
    oauth_provider.gate = asyncio.Event()
    oauth_provider.error = AuthError(AuthErrorKind.CONSENT_DECLINED)

    waiters = [asyncio.create_task(session.authenticate()) for _ in range(2)]
    await asyncio.sleep(0)
    oauth_provider.gate.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert oauth_provider.calls == 1
    assert all(isinstance(r, AuthError) for r in results)
    assert all(r.auth_kind is AuthErrorKind.CONSENT_DECLINED for r in results)
    assert session.state is AuthState.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_unexpected_failure_is_classified_unknown(
    session, oauth_provider
) -> None:
    oauth_provider.error = RuntimeError("boom")

    with pytest.raises(AuthError) as exc_info:
        await session.authenticate()

    assert exc_info.value.auth_kind is AuthErrorKind.UNKNOWN
    assert session.state is AuthState.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_expired_session_fails_fast_and_reprompts(
    session, oauth_provider, clock
) -> None:
    await session.authenticate()
    clock.advance(3600)

    assert session.state is AuthState.EXPIRED
    with pytest.raises(AuthError) as exc_info:
        session.authorized_headers()
    assert exc_info.value.auth_kind is AuthErrorKind.NOT_AUTHENTICATED
    assert "expired" in exc_info.value.message

    await session.authenticate()
    assert oauth_provider.calls == 2
    assert session.is_authenticated()


def test_headers_require_authentication(session) -> None:
    with pytest.raises(AuthError) as exc_info:
        session.authorized_headers()

    assert exc_info.value.auth_kind is AuthErrorKind.NOT_AUTHENTICATED


@pytest.mark.asyncio
async def test_clear_forgets_token(session) -> None:
    await session.authenticate()

    session.clear()

    assert session.state is AuthState.UNAUTHENTICATED
