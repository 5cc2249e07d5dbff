"""
src/model_fallback.py
======================
Shared retry + model fallback executor — Smart Listener

Wraps any provider operation (chat completion, transcription, ...) with
exponential back-off on transient failures and ordered fallback across a
list of models.

Usage::

    from src.model_fallback import RetryConfig, execute_with_fallback

    answer = await execute_with_fallback(
        lambda model: generate_answer(question, key, model, settings),
        ["gemini-2.5-flash", "gemini-2.0-flash"],
        RetryConfig(max_retries=2),
    )

State machine per invocation:
    for each model (outer loop):
        up to max_retries + 1 attempts (inner loop)
            success            → return immediately
            non-retryable      → next model, no retry notice
            retryable, budget  → sleep min(initial * mult^attempt, max)
            retryable, spent   → "switching" notice, next model
    nothing succeeded → QuotaExhaustedError

This module does NOT:
    - Create or manage provider clients
    - Perform any I/O other than the back-off sleep
    - Decide which models belong to a tier (see src.config)
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from src.errors import QuotaExhaustedError

logger = logging.getLogger("smartlistener.model_fallback")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryConfig:
    """Back-off parameters, immutable per invocation."""

    max_retries: int = 2            # total attempts per model = max_retries + 1
    initial_delay_ms: int = 1000
    max_delay_ms: int = 5000
    backoff_multiplier: float = 2.0

    def delay_ms(self, attempt: int) -> float:
        """Back-off delay after the given zero-based failed attempt."""
        return min(
            self.initial_delay_ms * (self.backoff_multiplier ** attempt),
            self.max_delay_ms,
        )


# Status values worth retrying on
_RETRYABLE_STATUSES: tuple[int | str, ...] = (429, 503, "429", "503", "RESOURCE_EXHAUSTED")

# Message fragments worth retrying on (matched lowercase)
_RETRYABLE_MESSAGES: tuple[str, ...] = (
    "rate limit",
    "quota",
    "resource_exhausted",
    "temporarily unavailable",
    "429",
    "too many requests",
)


# ---------------------------------------------------------------------------
# Progress events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FallbackProgress:
    """A single progress notification emitted by the executor."""

    status: str                      # trying | success | retrying | switching
    model: str
    model_index: int | None = None   # 1-based
    total_models: int | None = None
    attempt: int | None = None       # 1-based
    max_attempts: int | None = None
    delay_ms: float | None = None
    next_model: str | None = None


ProgressCallback = Callable[[FallbackProgress], None]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_retryable_error(exc: BaseException) -> bool:
    """Return True if the exception looks like rate limiting or a transient outage."""
    if type(exc).__name__ == "RateLimitError":
        return True

    for attr in ("status", "status_code", "code"):
        value = getattr(exc, attr, None)
        # Provider bodies sometimes carry a dict or list here
        if isinstance(value, (int, str)) and value in _RETRYABLE_STATUSES:
            return True

    message = str(exc).lower()
    return any(fragment in message for fragment in _RETRYABLE_MESSAGES)


def _emit(on_progress: ProgressCallback | None, event: FallbackProgress) -> None:
    if on_progress is None:
        return
    try:
        on_progress(event)
    except Exception as exc:
        logger.warning("Progress callback failed on '%s' event: %s", event.status, exc)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def execute_with_fallback(
    operation: Callable[[str], Awaitable[Any]],
    models: Sequence[str],
    retry_config: RetryConfig,
    on_progress: ProgressCallback | None = None,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """
    Run ``operation(model)`` with retry and ordered model fallback.

    Args:
        operation:    Async callable taking a model name.
        models:       Model identifiers, most-preferred first.
        retry_config: Back-off parameters.
        on_progress:  Optional sync callback receiving FallbackProgress.
        sleep:        Awaitable sleep taking seconds (injectable for tests).

    Returns:
        The first successful result.

    Raises:
        QuotaExhaustedError: If every model and attempt failed.
        ValueError: If ``retry_config.max_retries`` is negative.
    """
    if retry_config.max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    max_attempts = retry_config.max_retries + 1
    last_exc: Exception | None = None

    for model_index, model in enumerate(models):
        for attempt in range(max_attempts):
            logger.info(
                "Trying model %s (attempt %d/%d)", model, attempt + 1, max_attempts,
            )
            _emit(on_progress, FallbackProgress(
                status="trying",
                model=model,
                model_index=model_index + 1,
                total_models=len(models),
                attempt=attempt + 1,
                max_attempts=max_attempts,
            ))

            try:
                result = await operation(model)
            except Exception as exc:
                last_exc = exc
                logger.warning("Model %s failed: %s", model, exc)

                if not is_retryable_error(exc):
                    logger.info("Non-retryable error on %s, trying next model.", model)
                    break

                if attempt < retry_config.max_retries:
                    delay = retry_config.delay_ms(attempt)
                    logger.info("Rate limited on %s, retrying in %.0fms", model, delay)
                    _emit(on_progress, FallbackProgress(
                        status="retrying",
                        model=model,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay_ms=delay,
                    ))
                    await sleep(delay / 1000.0)
                    continue

                logger.info("Max retries reached for %s.", model)
                if model_index < len(models) - 1:
                    _emit(on_progress, FallbackProgress(
                        status="switching",
                        model=model,
                        next_model=models[model_index + 1],
                    ))
            else:
                logger.info("Success with model %s", model)
                _emit(on_progress, FallbackProgress(status="success", model=model))
                return result

    logger.error("All %d model(s) exhausted without success.", len(models))
    raise QuotaExhaustedError(models, last_exc) from last_exc
