# src/llm/__init__.py
# ====================
# Answer Generation Layer — Smart Listener
#
#   1. Resolve credential for the configured provider
#   2. Select the tier's model list + retry policy
#   3. Call OpenAI (or Gemini via its OpenAI-compatible endpoint)
#      through the shared retry / model-fallback executor
#
# Public API:
#   AnswerGenerator(config)               → await generator(question) -> str
#   generate_answer(question, key, model, settings) → str
#   resolve_credential(config)            → str | None

from src.llm.router import AnswerGenerator, generate_answer  # noqa: F401
from src.llm.credentials import resolve_credential  # noqa: F401
from src.llm.messages import AnswerSettings, build_settings  # noqa: F401

__all__ = [
    "AnswerGenerator",
    "AnswerSettings",
    "build_settings",
    "generate_answer",
    "resolve_credential",
]
