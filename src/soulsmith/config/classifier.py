"""LLM classifier configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .env import env_float, optional_env
from .errors import ConfigurationError
from .http_resilience import NO_RETRY, ResilienceConfig

OPENAI_BASE_URL = "https://api.openai.com/v1"
ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
DEFAULT_MODEL = "gpt-4o"
CLASSIFIER_TIMEOUT_SECONDS = 45.0


class ClassifierProvider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class ClassifierConfig:
    """Holds the completion endpoint settings used by curation and condensation."""

    provider: ClassifierProvider
    api_key: str
    model: str
    resilience: ResilienceConfig


def get_classifier_config(
    *,
    resilience: ResilienceConfig | None = None,
) -> ClassifierConfig | None:
    """Return classifier settings, or ``None`` when no API key is configured."""

    api_key = optional_env("LLM_API_KEY")
    if api_key is None:
        return None

    raw_provider = (optional_env("LLM_PROVIDER") or ClassifierProvider.OPENAI).lower()
    try:
        provider = ClassifierProvider(raw_provider)
    except ValueError as exc:
        raise ConfigurationError(f"Unsupported LLM_PROVIDER: {raw_provider}") from exc

    default_base = (
        ANTHROPIC_BASE_URL if provider is ClassifierProvider.ANTHROPIC else OPENAI_BASE_URL
    )
    base_url = (optional_env("LLM_BASE_URL") or default_base).rstrip("/") + "/"
    return ClassifierConfig(
        provider=provider,
        api_key=api_key,
        model=optional_env("LLM_MODEL") or DEFAULT_MODEL,
        resilience=resilience
        or ResilienceConfig(
            name="classifier",
            base_url=base_url,
            timeout_seconds=env_float("LLM_TIMEOUT_SECONDS", CLASSIFIER_TIMEOUT_SECONDS),
            retry=NO_RETRY,
            cache=None,
        ),
    )
