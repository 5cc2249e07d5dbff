"""
src/llm/openai_client.py
=========================
OpenAI Chat Client — Smart Listener

Responsibility:
    - Generate an answer for one question with one model via
      ``AsyncOpenAI().chat.completions.create``
    - Also serves OpenAI-compatible endpoints (see gemini_client.py)

Provider exceptions (openai.RateLimitError, openai.APIStatusError, ...)
propagate untouched so the fallback executor can classify them.

This module does NOT:
    - Retry or switch models (see src.model_fallback)
    - Resolve credentials (see credentials.py)
"""

import logging

from openai import AsyncOpenAI

from src.errors import ProviderResponseError
from src.llm.messages import AnswerSettings, build_messages, sampling_params

logger = logging.getLogger("smartlistener.llm.openai_client")


async def generate_chat_answer(
    question: str,
    api_key: str,
    model: str,
    settings: AnswerSettings,
    *,
    base_url: str | None = None,
    provider_name: str = "openai",
    client: AsyncOpenAI | None = None,
) -> str:
    """
    Ask ``model`` to answer ``question``.

    Args:
        question: The detected question.
        api_key:  Provider credential.
        model:    Model identifier.
        settings: Prompt and sampling settings.
        base_url: Override for OpenAI-compatible endpoints.
        provider_name: Label used in logs and errors.
        client:   Pre-built client (tests inject a mock here).

    Returns:
        The stripped completion text.

    Raises:
        ProviderResponseError: If the completion carries no text.
        openai.OpenAIError: If the API call fails.
    """
    messages = build_messages(question, settings)
    params = sampling_params(model, settings)

    logger.info(
        "Requesting %s answer (model=%s, %d message(s)).",
        provider_name, model, len(messages),
    )

    if client is None:
        async with AsyncOpenAI(api_key=api_key, base_url=base_url) as owned_client:
            completion = await owned_client.chat.completions.create(
                model=model, messages=messages, **params,
            )
    else:
        completion = await client.chat.completions.create(
            model=model, messages=messages, **params,
        )

    if not completion.choices:
        raise ProviderResponseError(provider_name, model, "no choices returned")

    content = completion.choices[0].message.content or ""
    if not content.strip():
        raise ProviderResponseError(provider_name, model, "empty completion")

    logger.debug("%s answer received (%d chars).", provider_name, len(content))
    return content.strip()
