"""
src/nlp/question_detector.py
=============================
Question Detector — Smart Listener

Responsibility:
    - Extract candidate questions from live transcript text
    - Deterministic, local, regex-driven (no LLM, no network)
    - Support English, Brazilian Portuguese and Spanish interrogatives

Detection logic:
    1. Split into sentences on . ! ? ; (followed by whitespace) or newlines
    2. Drop fragments of 8 characters or fewer
    3. A sentence qualifies if it ends with "?" OR starts with an
       interrogative word/phrase for the configured language
    4. Interrogative-prefix matches get "?" in place of any trailing . ! ;
    5. Questions with fewer than 3 words are dropped

This module does NOT:
    - Call any LLM or external API
    - Deduplicate against previously seen questions (see deduplicator.py)
    - Generate answers
"""

import logging
import re

logger = logging.getLogger("smartlistener.nlp.question_detector")


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

MIN_TEXT_CHARS: int = 15        # whole-input floor, checked before any regex
MIN_SENTENCE_CHARS: int = 8     # fragments of this length or shorter are dropped
MIN_QUESTION_WORDS: int = 3

DEFAULT_LANGUAGE: str = "en"


# ---------------------------------------------------------------------------
# Interrogative prefixes per language (anchored, case-insensitive)
# ---------------------------------------------------------------------------

_INTERROGATIVES: dict[str, list[str]] = {
    "pt-br": [
        "quem", "o que", "que", "qual", "quais", "quando", "onde", "como",
        "por que", "por quê", "pode", "poderia", "você", "é que", "será",
        "tem", "há", "existe", "consegue", "deveria", "devo", "devemos",
        "preciso", "precisamos", "é possível", "vale a pena",
    ],
    "en": [
        "who", "what", "which", "when", "where", "why", "how", "can",
        "could", "would", "should", "will", "is", "are", "do", "does", "did",
        "has", "have", "may", "might", "shall", "am", "isn't", "aren't",
        "don't", "doesn't", "won't", "wouldn't", "haven't",
    ],
    "es": [
        "quién", "qué", "cuál", "cuáles", "cuándo", "dónde", "cómo",
        "por qué", "puede", "podría", "es", "son", "hay", "tiene",
        "debería", "será", "existe", "se puede",
    ],
}

# Compiled once at import: language code → anchored pattern
QUESTION_PATTERNS: dict[str, re.Pattern[str]] = {
    lang: re.compile(
        r"^(?:" + "|".join(re.escape(word) for word in words) + r")\b",
        re.IGNORECASE,
    )
    for lang, words in _INTERROGATIVES.items()
}

# Sentence boundary: terminator followed by whitespace, or a newline run
_SENTENCE_SPLIT: re.Pattern[str] = re.compile(r"(?<=[.!?;])\s+|\n+")

# Quote / dash characters trimmed from both ends of a sentence
_EDGE_PUNCTUATION: re.Pattern[str] = re.compile(
    "^[\"“”'‘’`\\-–—]+|[\"“”'‘’`\\-–—]+$"
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _pattern_for(language: str | None) -> re.Pattern[str]:
    lang = (language or DEFAULT_LANGUAGE).lower()
    return QUESTION_PATTERNS.get(lang, QUESTION_PATTERNS[DEFAULT_LANGUAGE])


def _split_sentences(text: str) -> list[str]:
    """Split transcript text into trimmed sentences longer than MIN_SENTENCE_CHARS."""
    sentences: list[str] = []
    for part in _SENTENCE_SPLIT.split(text):
        part = part.strip()
        if len(part) > MIN_SENTENCE_CHARS:
            sentences.append(part)
    return sentences


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detect_questions(text: str, language: str | None = DEFAULT_LANGUAGE) -> list[str]:
    """
    Detect questions in transcript text.

    Args:
        text:     Transcript text (may span many sentences and lines).
        language: Language code ("en", "pt-br", "es"). Unknown codes fall
                  back to English.

    Returns:
        Detected questions in input order, each ending with "?".
    """
    if not text or len(text.strip()) < MIN_TEXT_CHARS:
        return []

    pattern = _pattern_for(language)
    questions: list[str] = []

    for sentence in _split_sentences(text):
        clean = _EDGE_PUNCTUATION.sub("", sentence).strip()
        if not clean:
            continue

        ends_with_question = clean.endswith("?")
        if not ends_with_question and not pattern.match(clean):
            continue

        question = clean if ends_with_question else clean.rstrip(".!;").rstrip() + "?"
        if len(question.split()) >= MIN_QUESTION_WORDS:
            questions.append(question)

    logger.debug("Detected %d question(s) in %d chars.", len(questions), len(text))
    return questions
