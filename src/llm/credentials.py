"""
src/llm/credentials.py
=======================
Credential resolution — Smart Listener

Resolves the API credential for the configured provider:
    google                 → config.google_api_key
    openai + codex auth    → awaited OAuth token provider
    openai                 → config.api_key

A missing credential is reported as ``None``; callers decide whether
that is fatal (AnswerGenerator raises CredentialUnavailableError).
"""

import logging
from typing import Awaitable, Callable

from src.config import ListenerConfig

logger = logging.getLogger("smartlistener.llm.credentials")

TokenProvider = Callable[[], Awaitable[str | None]]


async def resolve_credential(
    config: ListenerConfig,
    token_provider: TokenProvider | None = None,
) -> str | None:
    provider = config.provider or "openai"

    if provider == "google":
        return config.google_api_key or None

    if config.use_codex_auth:
        if token_provider is None:
            logger.warning("Codex auth enabled but no token provider configured.")
            return None
        try:
            token = await token_provider()
        except Exception as exc:
            logger.warning("Codex auth failed: %s", exc)
            return None
        return token or None

    return config.api_key or None
