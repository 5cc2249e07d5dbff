"""
src/llm/messages.py
====================
Answer prompt assembly — Smart Listener

Responsibility:
    - Hold the per-request generation settings (AnswerSettings)
    - Build the chat message list sent to any provider
    - Pick the token-limit parameter a model family expects

This module does NOT:
    - Call any provider
    - Resolve credentials
"""

from dataclasses import dataclass, field
from typing import Any

from src.config import (
    DEFAULT_SYSTEM_PROMPT,
    ListenerConfig,
    get_prompt_for_language,
    get_tier_config,
)

DEFAULT_TEMPERATURE: float = 0.7
DEFAULT_MAX_OUTPUT_TOKENS: int = 1000


@dataclass(frozen=True)
class AnswerSettings:
    """Everything a provider call needs besides question, key and model."""

    provider: str = "openai"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    language: str = "en"
    brief_mode: bool = False
    history: tuple[dict[str, str], ...] = field(default_factory=tuple)
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS


def build_settings(config: ListenerConfig) -> AnswerSettings:
    """Derive AnswerSettings from the listener config and its tier entry."""
    tier_config = get_tier_config(config.provider, config.tier)
    return AnswerSettings(
        provider=config.provider,
        system_prompt=config.system_prompt,
        language=config.language,
        brief_mode=config.brief_mode,
        history=tuple(config.conversation_history or ()),
        temperature=tier_config.get("temperature", DEFAULT_TEMPERATURE),
        max_output_tokens=tier_config.get("max_output_tokens", DEFAULT_MAX_OUTPUT_TOKENS),
    )


def build_system_prompt(settings: AnswerSettings) -> str:
    prompt = settings.system_prompt or DEFAULT_SYSTEM_PROMPT
    prompt += get_prompt_for_language("language.responseInstruction", settings.language)
    if settings.brief_mode:
        prompt += get_prompt_for_language("knowledgeBase.briefMode", settings.language)
    return prompt


def build_messages(question: str, settings: AnswerSettings) -> list[dict[str, str]]:
    """System prompt, prior conversation turns, then the question."""
    return [
        {"role": "system", "content": build_system_prompt(settings)},
        *settings.history,
        {"role": "user", "content": question},
    ]


def uses_completion_token_limit(model: str) -> bool:
    """Reasoning-style models take max_completion_tokens and a fixed temperature."""
    return model.startswith(("gpt-5", "o1")) or "thinking" in model


def sampling_params(model: str, settings: AnswerSettings) -> dict[str, Any]:
    if uses_completion_token_limit(model):
        return {"max_completion_tokens": settings.max_output_tokens, "temperature": 1}
    return {"max_tokens": settings.max_output_tokens, "temperature": settings.temperature}
