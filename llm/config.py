"""
LLM provider configuration.

ProviderConfig is an immutable value. ProviderConfigChannel holds the current
value and tells subscribers whenever it changes, so long-lived clients pick up
new keys or models without being rebuilt.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

MOCK_PROVIDER = "mock"


@dataclass(frozen=True)
class ProviderInfo:
    name: str
    endpoint: Optional[str]
    models: List[str] = field(default_factory=list)
    requires_api_key: bool = True
    free_limit: str = ""

    @property
    def default_model(self) -> str:
        return self.models[0] if self.models else "mock-model"


PROVIDERS: Dict[str, ProviderInfo] = {
    "groq": ProviderInfo(
        name="Groq",
        endpoint="https://api.groq.com/openai/v1/chat/completions",
        models=[
            "llama3-8b-8192",
            "llama3-70b-8192",
            "mixtral-8x7b-32768",
            "gemma-7b-it",
        ],
        free_limit="6,000 requests/minute",
    ),
    "gemini": ProviderInfo(
        name="Google Gemini",
        endpoint="https://generativelanguage.googleapis.com/v1beta/models",
        models=["gemini-pro", "gemini-pro-vision"],
        free_limit="15 requests/minute",
    ),
    "huggingface": ProviderInfo(
        name="Hugging Face",
        endpoint="https://api-inference.huggingface.co/models",
        models=[
            "microsoft/DialoGPT-medium",
            "microsoft/DialoGPT-large",
            "facebook/blenderbot-400M-distill",
        ],
        free_limit="Rate limited",
    ),
    MOCK_PROVIDER: ProviderInfo(
        name="Mock Provider",
        endpoint=None,
        models=["mock-model"],
        requires_api_key=False,
        free_limit="Unlimited",
    ),
}


def provider_info(provider: str) -> ProviderInfo:
    """Known provider details; unknown names fall back to the mock entry."""
    return PROVIDERS.get(provider, PROVIDERS[MOCK_PROVIDER])


@dataclass(frozen=True)
class ProviderConfig:
    provider: str = MOCK_PROVIDER
    api_key: str = ""
    model: str = "mock-model"
    endpoint: str = ""

    @property
    def info(self) -> ProviderInfo:
        return provider_info(self.provider)

    @property
    def resolved_endpoint(self) -> Optional[str]:
        return self.endpoint or self.info.endpoint

    def is_configured(self) -> bool:
        if self.provider == MOCK_PROVIDER:
            return True
        return bool(self.api_key and self.model)

    def validate_provider(self) -> Tuple[bool, str]:
        """Local sanity check; no request is made to the provider."""
        if self.provider == MOCK_PROVIDER:
            return True, "Mock provider is always valid"
        if self.provider not in PROVIDERS:
            return False, f"Unsupported provider: {self.provider}"
        if not self.api_key:
            return False, "API key is required"
        if not self.model:
            return False, "Model selection is required"
        return True, "Configuration appears valid"

    def with_provider(self, provider: str, api_key: str = "") -> "ProviderConfig":
        """Switch provider, taking its default model and endpoint."""
        info = provider_info(provider)
        return ProviderConfig(
            provider=provider,
            api_key=api_key,
            model=info.default_model,
            endpoint=info.endpoint or "",
        )

    def to_env_file(self) -> str:
        lines = [
            "# AI Provider Configuration",
            "# Generated by autoform-mcp",
            "",
            f"LLM_PROVIDER={self.provider}",
        ]
        if self.api_key:
            lines.append(f"LLM_API_KEY={self.api_key}")
        else:
            lines.append("# LLM_API_KEY=your_api_key_here")
        lines.append(f"LLM_MODEL={self.model}")
        if self.endpoint:
            lines.append(f"LLM_ENDPOINT={self.endpoint}")
        return "\n".join(lines)

    def redacted(self) -> Dict[str, str]:
        return {
            "provider": self.provider,
            "model": self.model,
            "endpoint": self.resolved_endpoint or "",
            "api_key": "set" if self.api_key else "missing",
        }


Subscriber = Callable[[ProviderConfig], None]


class ProviderConfigChannel:
    """Current provider configuration plus change notifications."""

    def __init__(self, initial: Optional[ProviderConfig] = None):
        self._current = initial or ProviderConfig()
        self._subscribers: List[Subscriber] = []

    @property
    def current(self) -> ProviderConfig:
        return self._current

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self._current)
            except Exception as e:
                logger.error(
                    f"[provider_config] Error in config subscriber {callback!r}: {e}"
                )

    def set(self, config: ProviderConfig) -> ProviderConfig:
        self._current = config
        logger.info(
            f"[provider_config] Provider set to '{config.provider}' "
            f"(model: {config.model})"
        )
        self._publish()
        return config

    def update(self, **changes) -> ProviderConfig:
        return self.set(replace(self._current, **changes))

    def switch_provider(self, provider: str, api_key: str = "") -> ProviderConfig:
        return self.set(self._current.with_provider(provider, api_key))

    def reset(self) -> ProviderConfig:
        return self.set(ProviderConfig())
