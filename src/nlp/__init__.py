# src/nlp/__init__.py
# ====================
# Transcript Heuristics Layer — Smart Listener
#
# Responsibility:
#   - Local question detection (regex interrogative tables, en / pt-br / es)
#   - Near-duplicate suppression within a cooldown window
#
# Both are synchronous and non-network by contract; they run inline
# inside the analysis loop.
#
# Public API:
#   - detect_questions(text, language) -> list[str]
#   - is_duplicate(candidate, existing_items, cooldown_ms) -> bool

from src.nlp.question_detector import detect_questions  # noqa: F401
from src.nlp.deduplicator import (  # noqa: F401
    is_duplicate,
    normalize_for_similarity,
)

__all__ = [
    "detect_questions",
    "is_duplicate",
    "normalize_for_similarity",
]
