"""
src/llm/router.py
==================
Answer Router — Smart Listener

Responsibility:
    Single entry point for "answer this question":
        1. Resolve the provider credential (fail fast if absent)
        2. Look up the tier's ordered model list and retry policy
        3. Build prompt / sampling settings
        4. Free tier: run the provider call through execute_with_fallback.
           Single-model tiers: call the provider once, errors propagate as-is.
               google → Gemini (OpenAI-compatible endpoint)
               other  → OpenAI chat completions

This module does NOT:
    - Queue, deduplicate or schedule questions (see src.answer_queue)
    - Classify errors (see src.model_fallback)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from src.config import (
    ListenerConfig,
    get_model_list_for_tier,
    get_retry_config,
    tier_uses_fallback,
)
from src.errors import CredentialUnavailableError
from src.llm.credentials import TokenProvider, resolve_credential
from src.llm.gemini_client import generate_gemini_answer
from src.llm.messages import AnswerSettings, build_settings
from src.llm.openai_client import generate_chat_answer
from src.model_fallback import FallbackProgress, execute_with_fallback

logger = logging.getLogger("smartlistener.llm.router")


# ---------------------------------------------------------------------------
# Provider dispatch
# ---------------------------------------------------------------------------


async def generate_answer(
    question: str,
    credential: str,
    model: str,
    settings: AnswerSettings,
) -> str:
    """One provider call, no retries. Routed on ``settings.provider``."""
    if settings.provider == "google":
        return await generate_gemini_answer(question, credential, model, settings)
    return await generate_chat_answer(question, credential, model, settings)


def _log_progress(event: FallbackProgress) -> None:
    if event.status == "retrying":
        logger.info(
            "Retrying %s (attempt %s/%s) in %.0fms",
            event.model, event.attempt, event.max_attempts, event.delay_ms or 0,
        )
    elif event.status == "switching":
        logger.info("Switching model %s -> %s", event.model, event.next_model)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class AnswerGenerator:
    """
    Bound answer generator: ``await generator(question) -> str``.

    Args:
        config:         Listener configuration (provider, tier, prompts).
        token_provider: Async OAuth token source for codex auth.
        call:           Provider call override (defaults to generate_answer).
        sleep:          Back-off sleep override passed to the executor.
    """

    def __init__(
        self,
        config: ListenerConfig,
        *,
        token_provider: TokenProvider | None = None,
        call: Callable[[str, str, str, AnswerSettings], Awaitable[str]] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._config = config
        self._token_provider = token_provider
        self._call = call or generate_answer
        self._sleep = sleep

    @property
    def config(self) -> ListenerConfig:
        return self._config

    async def __call__(self, question: str) -> str:
        return await self.generate(question)

    async def generate(self, question: str) -> str:
        """
        Generate an answer with the configured tier's fallback policy.

        Raises:
            CredentialUnavailableError: If no credential resolves.
            QuotaExhaustedError: If every free-tier model and attempt failed.
            Exception: Provider errors on single-model tiers, unchanged.
        """
        config = self._config
        credential = await resolve_credential(config, self._token_provider)
        if not credential:
            raise CredentialUnavailableError(config.provider)

        models = get_model_list_for_tier(config.provider, config.tier)
        settings = build_settings(config)

        if not tier_uses_fallback(config.provider, config.tier):
            return await self._call(question, credential, models[0], settings)

        retry_config = get_retry_config(config.provider, config.tier)

        async def operation(model: str) -> str:
            return await self._call(question, credential, model, settings)

        return await execute_with_fallback(
            operation,
            models,
            retry_config,
            _log_progress,
            sleep=self._sleep,
        )
