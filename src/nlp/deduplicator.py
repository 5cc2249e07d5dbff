"""
src/nlp/deduplicator.py
========================
Question Deduplicator — Smart Listener

Responsibility:
    - Decide whether a freshly detected question repeats one already
      queued within the cooldown window
    - Stopword-filtered token comparison, DETERMINISTIC (no LLM)

Match conditions (any one makes a duplicate):
    a. Normalized strings are equal
    b. One normalized string contains the other
    c. Token overlap |A ∩ B| / max(|A|, |B|) exceeds the threshold

Items older than the cooldown never block a new question.

This module does NOT:
    - Detect questions (see question_detector.py)
    - Mutate the queue
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable

logger = logging.getLogger("smartlistener.nlp.deduplicator")


# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

QUESTION_COOLDOWN_MS: int = 120_000
SIMILARITY_THRESHOLD: float = 0.65
MIN_TOKEN_CHARS: int = 3

# Portuguese, English and Spanish function words
STOPWORDS: frozenset[str] = frozenset({
    # pt-br
    "o", "a", "os", "as", "um", "uma", "de", "do", "da", "dos", "das", "em",
    "no", "na", "por", "para", "com", "que", "se", "é", "e", "ou", "mas",
    "como", "isso", "esse", "essa", "este", "esta",
    # en
    "the", "an", "is", "are", "was", "were", "of", "in", "to", "for", "with",
    "that", "this", "it", "be", "as", "at", "by", "we", "he", "she",
    # es
    "el", "la", "los", "las", "un", "una", "del", "al", "en", "con", "por",
    "para", "que", "es", "y", "pero", "como", "este", "esta", "eso",
})

_PUNCTUATION: re.Pattern[str] = re.compile(r"[^\w\s]")


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def tokenize_for_similarity(text: str) -> list[str]:
    """Lowercase, strip punctuation, and drop short tokens and stopwords."""
    cleaned = _PUNCTUATION.sub("", text.strip().lower())
    return [
        word for word in cleaned.split()
        if len(word) >= MIN_TOKEN_CHARS and word not in STOPWORDS
    ]


def normalize_for_similarity(text: str) -> str:
    return " ".join(tokenize_for_similarity(text))


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _is_similar(candidate: str, existing: str, threshold: float) -> bool:
    if not candidate or not existing:
        return False

    if candidate == existing:
        return True
    if candidate in existing or existing in candidate:
        return True

    candidate_words = set(candidate.split())
    existing_words = set(existing.split())
    overlap = len(candidate_words & existing_words)
    return overlap / max(len(candidate_words), len(existing_words)) > threshold


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_duplicate(
    candidate: str,
    existing_items: Iterable[Any],
    cooldown_ms: int = QUESTION_COOLDOWN_MS,
    *,
    similarity_threshold: float = SIMILARITY_THRESHOLD,
    now: datetime | None = None,
) -> bool:
    """
    Check whether ``candidate`` repeats a recent queued question.

    Args:
        candidate:            Newly detected question text.
        existing_items:       Queue items (objects or dicts) exposing
                              ``question`` and ``timestamp``.
        cooldown_ms:          Only items at most this old are compared.
        similarity_threshold: Token-overlap ratio that must be exceeded.
        now:                  Reference time (defaults to current UTC).

    Returns:
        True if any recent item matches.
    """
    normalized = normalize_for_similarity(candidate)
    if not normalized:
        return False

    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    for item in existing_items:
        created = _as_datetime(_field(item, "timestamp"))
        if created is None:
            continue

        age_ms = (reference - created).total_seconds() * 1000
        if age_ms > cooldown_ms:
            continue

        existing = normalize_for_similarity(_field(item, "question") or "")
        if _is_similar(normalized, existing, similarity_threshold):
            logger.debug("Duplicate question suppressed: %r ~ %r", candidate, existing)
            return True

    return False
