"""
Server settings.

Values come from, in increasing precedence: built-in defaults, an optional
YAML file (path argument or AUTOFORM_CONFIG), and environment variables.

Example YAML:

    google:
      client_secrets_file: ~/.config/autoform/client_secret.json
    submission:
      batch_size: 50
      cooldown_seconds: 2
    llm:
      provider: groq
      model: llama3-70b-8192
    log_level: DEBUG
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from llm.config import ProviderConfig, provider_info

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "AUTOFORM_CONFIG"


class GoogleSettings(BaseModel):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    client_secrets_file: Optional[str] = None
    # None means: whatever the registered tools need
    scopes: Optional[List[str]] = None
    open_browser: bool = True
    consent_timeout_seconds: int = 300


class SubmissionSettings(BaseModel):
    batch_size: int = Field(default=100, ge=1, le=100)
    cooldown_seconds: float = Field(default=1.0, ge=0)
    rate_limit_retries: int = Field(default=5, ge=0)
    backoff_base_seconds: float = Field(default=1.0, gt=0)
    backoff_max_seconds: float = Field(default=60.0, gt=0)


class LLMSettings(BaseModel):
    provider: str = "mock"
    api_key: str = ""
    model: Optional[str] = None
    endpoint: str = ""
    timeout_seconds: float = 120

    def to_provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            provider=self.provider,
            api_key=self.api_key,
            model=self.model or provider_info(self.provider).default_model,
            endpoint=self.endpoint,
        )


class Settings(BaseModel):
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    submission: SubmissionSettings = Field(default_factory=SubmissionSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    log_level: str = "INFO"


# env var -> (section, key); section None means top level
ENV_OVERRIDES = {
    "GOOGLE_CLIENT_ID": ("google", "client_id"),
    "GOOGLE_CLIENT_SECRET": ("google", "client_secret"),
    "GOOGLE_CLIENT_SECRETS_FILE": ("google", "client_secrets_file"),
    "LLM_PROVIDER": ("llm", "provider"),
    "LLM_API_KEY": ("llm", "api_key"),
    "LLM_MODEL": ("llm", "model"),
    "LLM_ENDPOINT": ("llm", "endpoint"),
    "AUTOFORM_LOG_LEVEL": (None, "log_level"),
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.expanduser().open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ValueError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ValueError(f"Config file {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return data


def _apply_env(data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if not value:
            continue
        if section is None:
            data[key] = value
        else:
            data.setdefault(section, {})
            if not isinstance(data[section], dict):
                data[section] = {}
            data[section][key] = value
    return data


def load_settings(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """
    Build Settings from defaults, an optional YAML file and the environment.

    Raises:
        ValueError: the YAML file is missing, malformed or fails validation.
    """
    environ = os.environ if environ is None else environ
    path = path or environ.get(CONFIG_PATH_ENV)

    data: Dict[str, Any] = {}
    if path:
        data = _read_yaml(Path(path))
        logger.info(f"[load_settings] Loaded settings file {path}")
    data = _apply_env(data, environ)

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid settings: {e}") from e
