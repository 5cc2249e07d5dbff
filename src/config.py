"""
src/config.py
==============
Configuration — Smart Listener

Responsibility:
    - Model tier table per provider (analyze model / fallback model list,
      sampling parameters, retry policy)
    - Language-specific prompt fragments
    - Environment-driven ListenerConfig (read after load_dotenv())

Environment variables:
    SMART_LISTENER_PROVIDER          openai | google          (default openai)
    SMART_LISTENER_TIER              fast | balanced | quality | free
    SMART_LISTENER_LANGUAGE          en | pt-br | es          (default en)
    SMART_LISTENER_SYSTEM_PROMPT     overrides the default system prompt
    SMART_LISTENER_BRIEF_MODE        true | false             (default true)
    SMART_LISTENER_USE_CODEX_AUTH    true | false             (default false)
    SMART_LISTENER_MAX_CONCURRENT    int                      (default 2)
    SMART_LISTENER_COOLDOWN_MS       int                      (default 120000)
    SMART_LISTENER_SIMILARITY        float                    (default 0.65)
    SMART_LISTENER_DELTA_CHARS       int                      (default 30)
    OPENAI_API_KEY / GOOGLE_API_KEY

This module does NOT:
    - Persist configuration to disk
    - Resolve credentials (see src.llm.credentials)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from src.model_fallback import RetryConfig

logger = logging.getLogger("smartlistener.config")


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

MAX_CONCURRENT_RESPONSES: int = 2
QUESTION_COOLDOWN_MS: int = 120_000
SIMILARITY_THRESHOLD: float = 0.65
ANALYSIS_DELTA_CHARS: int = 30

DEFAULT_PROVIDER: str = "openai"
DEFAULT_TIER: str = "balanced"
DEFAULT_LANGUAGE: str = "en"

DEFAULT_RETRY_CONFIG: RetryConfig = RetryConfig(
    max_retries=2,
    initial_delay_ms=1000,
    max_delay_ms=5000,
    backoff_multiplier=2.0,
)


# ---------------------------------------------------------------------------
# Model tiers
# ---------------------------------------------------------------------------
# "analyze" may be a single model or an ordered fallback list.

MODEL_TIERS: dict[str, dict[str, dict[str, Any]]] = {
    "openai": {
        "fast": {"analyze": "gpt-4o-mini", "temperature": 0.5, "max_output_tokens": 600},
        "balanced": {"analyze": "gpt-4o", "temperature": 0.7, "max_output_tokens": 1000},
        "quality": {"analyze": "gpt-4.1", "temperature": 0.7, "max_output_tokens": 1500},
    },
    "google": {
        "free": {
            "analyze": ["gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-2.0-flash"],
            "temperature": 0.7,
            "max_output_tokens": 1000,
            "retry": {
                "max_retries": 2,
                "initial_delay_ms": 1000,
                "max_delay_ms": 5000,
                "backoff_multiplier": 2.0,
            },
        },
        "fast": {"analyze": "gemini-2.5-flash-lite", "temperature": 0.5, "max_output_tokens": 600},
        "balanced": {"analyze": "gemini-2.5-flash", "temperature": 0.7, "max_output_tokens": 1000},
        "quality": {"analyze": "gemini-2.5-pro", "temperature": 0.7, "max_output_tokens": 1500},
    },
}


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

DEFAULT_SYSTEM_PROMPT: str = (
    "You are a helpful assistant listening to a live conversation. "
    "Answer the question you are given clearly and accurately."
)

_PROMPTS: dict[str, dict[str, str]] = {
    "language.responseInstruction": {
        "en": "\n\nAlways answer in English.",
        "pt-br": "\n\nSempre responda em português do Brasil.",
        "es": "\n\nResponde siempre en español.",
    },
    "knowledgeBase.briefMode": {
        "en": "\n\nKeep the answer short: at most three sentences.",
        "pt-br": "\n\nSeja breve: no máximo três frases.",
        "es": "\n\nSé breve: como máximo tres frases.",
    },
}


def get_prompt_for_language(prompt_path: str, language: str = DEFAULT_LANGUAGE) -> str:
    """Return the prompt fragment for ``language``, falling back to English."""
    variants = _PROMPTS.get(prompt_path)
    if variants is None:
        logger.warning("Prompt path not found: %s", prompt_path)
        return ""
    return variants.get(language) or variants.get(DEFAULT_LANGUAGE, "")


# ---------------------------------------------------------------------------
# Tier lookups
# ---------------------------------------------------------------------------


def get_tier_config(provider: str = DEFAULT_PROVIDER, tier: str = DEFAULT_TIER) -> dict[str, Any]:
    """Full tier entry; unknown tiers fall back to "balanced"."""
    provider_tiers = MODEL_TIERS.get(provider)
    if provider_tiers is None:
        logger.warning("Provider not found: %s, falling back to %s", provider, DEFAULT_PROVIDER)
        provider_tiers = MODEL_TIERS[DEFAULT_PROVIDER]

    tier_config = provider_tiers.get(tier)
    if tier_config is None:
        logger.warning("Tier not found: %s, falling back to %s", tier, DEFAULT_TIER)
        tier_config = provider_tiers[DEFAULT_TIER]
    return tier_config


def get_model_list_for_tier(provider: str = DEFAULT_PROVIDER, tier: str = DEFAULT_TIER) -> list[str]:
    """Ordered model list for the tier's analyze slot."""
    value = get_tier_config(provider, tier).get("analyze")
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value] if value else []


def tier_uses_fallback(provider: str = DEFAULT_PROVIDER, tier: str = DEFAULT_TIER) -> bool:
    """True for tiers with a model list or their own retry section (the free tier)."""
    tier_config = get_tier_config(provider, tier)
    return isinstance(tier_config.get("analyze"), (list, tuple)) or bool(tier_config.get("retry"))


def get_retry_config(provider: str = DEFAULT_PROVIDER, tier: str = DEFAULT_TIER) -> RetryConfig:
    retry = get_tier_config(provider, tier).get("retry")
    if not retry:
        return DEFAULT_RETRY_CONFIG
    return RetryConfig(**retry)


# ---------------------------------------------------------------------------
# Listener configuration
# ---------------------------------------------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ListenerConfig:
    """Runtime configuration consumed by the listener and answer generator."""

    provider: str = DEFAULT_PROVIDER
    tier: str = DEFAULT_TIER
    language: str = DEFAULT_LANGUAGE
    api_key: str | None = None
    google_api_key: str | None = None
    use_codex_auth: bool = False
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    brief_mode: bool = True
    conversation_history: list[dict[str, str]] = field(default_factory=list)
    max_concurrent_responses: int = MAX_CONCURRENT_RESPONSES
    question_cooldown_ms: int = QUESTION_COOLDOWN_MS
    similarity_threshold: float = SIMILARITY_THRESHOLD
    analysis_delta_chars: int = ANALYSIS_DELTA_CHARS


def load_config() -> ListenerConfig:
    """
    Build a ListenerConfig from environment variables.

    Call ``dotenv.load_dotenv()`` first so .env values are visible.

    Raises:
        ValueError: If a numeric variable cannot be parsed.
    """
    config = ListenerConfig(
        provider=os.getenv("SMART_LISTENER_PROVIDER", DEFAULT_PROVIDER).lower(),
        tier=os.getenv("SMART_LISTENER_TIER", DEFAULT_TIER).lower(),
        language=os.getenv("SMART_LISTENER_LANGUAGE", DEFAULT_LANGUAGE).lower(),
        api_key=os.getenv("OPENAI_API_KEY") or None,
        google_api_key=os.getenv("GOOGLE_API_KEY") or None,
        use_codex_auth=_env_bool("SMART_LISTENER_USE_CODEX_AUTH", False),
        system_prompt=os.getenv("SMART_LISTENER_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
        brief_mode=_env_bool("SMART_LISTENER_BRIEF_MODE", True),
        max_concurrent_responses=int(
            os.getenv("SMART_LISTENER_MAX_CONCURRENT", str(MAX_CONCURRENT_RESPONSES))
        ),
        question_cooldown_ms=int(
            os.getenv("SMART_LISTENER_COOLDOWN_MS", str(QUESTION_COOLDOWN_MS))
        ),
        similarity_threshold=float(
            os.getenv("SMART_LISTENER_SIMILARITY", str(SIMILARITY_THRESHOLD))
        ),
        analysis_delta_chars=int(
            os.getenv("SMART_LISTENER_DELTA_CHARS", str(ANALYSIS_DELTA_CHARS))
        ),
    )

    logger.info(
        "Config loaded: provider=%s tier=%s language=%s max_concurrent=%d",
        config.provider, config.tier, config.language, config.max_concurrent_responses,
    )
    return config
