"""
Wiring: build every long-lived component once from Settings.

Tools receive a Services value instead of reaching for module globals, so
tests can hand in fakes for any piece.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from auth.oauth import InstalledAppOAuthProvider, OAuthProvider
from auth.scope_registry import get_required_scopes
from auth.session import AuthSession
from core.config import Settings
from gforms.client import FormsApiClient, build_forms_service
from gforms.submission import FormSubmitter, SubmissionPolicy
from llm.client import LLMClient
from llm.config import ProviderConfigChannel
from llm.generator import FormSchemaGenerator

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    provider_channel: ProviderConfigChannel
    llm_client: LLMClient
    generator: FormSchemaGenerator
    session: AuthSession
    forms_client: FormsApiClient
    submitter: FormSubmitter


def submission_policy(settings: Settings) -> SubmissionPolicy:
    s = settings.submission
    return SubmissionPolicy(
        batch_size=s.batch_size,
        cooldown_seconds=s.cooldown_seconds,
        max_rate_limit_retries=s.rate_limit_retries,
        backoff_base_seconds=s.backoff_base_seconds,
        backoff_max_seconds=s.backoff_max_seconds,
    )


def build_services(
    settings: Settings,
    oauth_provider: Optional[OAuthProvider] = None,
    forms_service=None,
) -> Services:
    """
    Args:
        settings: Loaded settings.
        oauth_provider: Override for the installed-app consent flow.
        forms_service: Override for the googleapiclient Forms resource.
    """
    channel = ProviderConfigChannel(settings.llm.to_provider_config())
    llm_client = LLMClient(channel, timeout=settings.llm.timeout_seconds)

    google = settings.google
    provider = oauth_provider or InstalledAppOAuthProvider(
        client_id=google.client_id,
        client_secret=google.client_secret,
        client_secrets_file=google.client_secrets_file,
        open_browser=google.open_browser,
        timeout_seconds=google.consent_timeout_seconds,
    )
    scopes = google.scopes or get_required_scopes()
    session = AuthSession(provider, scopes)
    if forms_service is None:
        forms_service = build_forms_service()
    forms_client = FormsApiClient(forms_service, session)

    logger.info(
        f"[build_services] LLM provider: {channel.current.provider}; "
        f"scopes: {', '.join(scopes)}"
    )
    return Services(
        settings=settings,
        provider_channel=channel,
        llm_client=llm_client,
        generator=FormSchemaGenerator(llm_client),
        session=session,
        forms_client=forms_client,
        submitter=FormSubmitter(forms_client, session, submission_policy(settings)),
    )
