"""
HTTP client for the supported LLM providers.

Each provider call is a blocking requests.post run on a worker thread. The
client follows its ProviderConfigChannel, so a key or model change takes
effect on the next call.
"""

import asyncio
import logging
from typing import Any, Callable, Dict

import requests

from gforms.errors import LLMProviderError, ProviderConfigError
from llm.config import MOCK_PROVIDER, ProviderConfig, ProviderConfigChannel

logger = logging.getLogger(__name__)

TEMPERATURE = 0.1
MAX_TOKENS = 3000
REQUEST_TIMEOUT_SECONDS = 120


def _redact(text: str, secret: str) -> str:
    return text.replace(secret, "***") if secret else text


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason or response.text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or response.reason
    if isinstance(error, str):
        return error
    return response.reason or response.text


class LLMClient:
    """Sends a system + user prompt to the configured provider and returns raw text."""

    def __init__(
        self, channel: ProviderConfigChannel, timeout: float = REQUEST_TIMEOUT_SECONDS
    ):
        self.channel = channel
        self.timeout = timeout
        self.config = channel.current
        self._unsubscribe = channel.subscribe(self._refresh)

    def _refresh(self, config: ProviderConfig) -> None:
        self.config = config
        logger.debug(f"[llm_client] Using provider '{config.provider}'")

    def close(self) -> None:
        self._unsubscribe()

    def _check_configured(self) -> ProviderConfig:
        config = self.config
        if config.provider == MOCK_PROVIDER or not config.is_configured():
            raise ProviderConfigError(
                "LLM provider must be configured. Please configure an AI provider to generate forms."
            )
        if not config.resolved_endpoint or not config.api_key:
            raise ProviderConfigError(
                "API configuration incomplete. Please check your provider settings."
            )
        return config

    def _post(
        self,
        config: ProviderConfig,
        provider_name: str,
        url: str,
        payload: Dict[str, Any],
        headers: Dict[str, str],
    ) -> Dict[str, Any]:
        try:
            response = requests.post(
                url, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            # requests puts the full URL in its messages
            message = _redact(f"Request failed: {e}", config.api_key)
            raise LLMProviderError(provider_name, message) from None
        if not response.ok:
            raise LLMProviderError(
                provider_name,
                _redact(_error_message(response), config.api_key),
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise LLMProviderError(provider_name, "Response was not JSON") from e

    def _call_groq(
        self, config: ProviderConfig, system_prompt: str, user_prompt: str
    ) -> str:
        payload = {
            "model": config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        }
        data = self._post(config, "Groq", config.resolved_endpoint, payload, headers)
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMProviderError("Groq", "No content in Groq response") from e

    def _call_huggingface(
        self, config: ProviderConfig, system_prompt: str, user_prompt: str
    ) -> str:
        payload = {
            "inputs": f"{system_prompt}\n\nUser: {user_prompt}\nAssistant: ",
            "parameters": {
                "max_new_tokens": MAX_TOKENS,
                "temperature": TEMPERATURE,
                "return_full_text": False,
                "do_sample": True,
            },
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        }
        data = self._post(
            config,
            "HuggingFace",
            f"{config.resolved_endpoint}/{config.model}",
            payload,
            headers,
        )
        if isinstance(data, list):
            data = data[0] if data else {}
        text = data.get("generated_text") if isinstance(data, dict) else None
        if not text:
            raise LLMProviderError("HuggingFace", "No content in HuggingFace response")
        return text

    def _call_gemini(
        self, config: ProviderConfig, system_prompt: str, user_prompt: str
    ) -> str:
        full_prompt = (
            f"{system_prompt}\n\n{user_prompt}\n\n"
            "Please respond with valid JSON only, no additional text or markdown."
        )
        payload = {
            "contents": [{"parts": [{"text": full_prompt}]}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": MAX_TOKENS,
            },
        }
        url = f"{config.resolved_endpoint}/{config.model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": config.api_key,
        }
        data = self._post(config, "Gemini", url, payload, headers)
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMProviderError("Gemini", "No content in Gemini response") from e

    def _dispatch(
        self, config: ProviderConfig
    ) -> Callable[[ProviderConfig, str, str], str]:
        handlers = {
            "groq": self._call_groq,
            "huggingface": self._call_huggingface,
            "gemini": self._call_gemini,
        }
        handler = handlers.get(config.provider)
        if handler is None:
            raise ProviderConfigError(f"Unsupported provider: {config.provider}")
        return handler

    async def generate(self, prompt: str, system_instructions: str) -> str:
        """
        Run one completion and return the provider's raw text.

        Raises:
            ProviderConfigError: no usable provider is configured.
            LLMProviderError: the provider call failed or returned nothing usable.
        """
        config = self._check_configured()
        handler = self._dispatch(config)
        logger.info(f"[generate] Calling {config.info.name} (model: {config.model})")
        return await asyncio.to_thread(handler, config, system_instructions, prompt)
