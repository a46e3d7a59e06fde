import sys
from pathlib import Path

import pytest

# Add project root to sys.path
# This ensures that 'gforms', 'auth', 'core' and 'llm' are importable as
# top-level packages during tests
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import FakeClock, FakeFormsService, FakeOAuthProvider  # noqa: E402


@pytest.fixture
def forms_service():
    return FakeFormsService()


@pytest.fixture
def oauth_provider():
    return FakeOAuthProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(oauth_provider, clock):
    from auth.session import AuthSession

    return AuthSession(
        oauth_provider, ["https://www.googleapis.com/auth/forms.body"], clock=clock
    )


@pytest.fixture
def forms_client(forms_service, session):
    from gforms.client import FormsApiClient

    return FormsApiClient(forms_service, session)


@pytest.fixture
def recorded_sleeps():
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    async def _sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)

    return _sleep
