"""
src/llm/gemini_client.py
=========================
Google Gemini Chat Client — Smart Listener

Uses Gemini's OpenAI-compatible endpoint, so the same SDK and the same
error types (429 → openai.RateLimitError) flow into the fallback
executor.

This module does NOT:
    - Retry or switch models (see src.model_fallback)
    - Use Gemini file search / knowledge bases
"""

import logging
import os

from openai import AsyncOpenAI

from src.llm.messages import AnswerSettings
from src.llm.openai_client import generate_chat_answer

logger = logging.getLogger("smartlistener.llm.gemini_client")

GEMINI_OPENAI_BASE_URL: str = os.getenv(
    "GEMINI_OPENAI_BASE_URL",
    "https://generativelanguage.googleapis.com/v1beta/openai/",
)


async def generate_gemini_answer(
    question: str,
    api_key: str,
    model: str,
    settings: AnswerSettings,
    *,
    client: AsyncOpenAI | None = None,
) -> str:
    """Answer ``question`` with a Gemini model. See generate_chat_answer."""
    return await generate_chat_answer(
        question,
        api_key,
        model,
        settings,
        base_url=GEMINI_OPENAI_BASE_URL,
        provider_name="google",
        client=client,
    )
