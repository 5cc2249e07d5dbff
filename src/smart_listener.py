"""
src/smart_listener.py
======================
Smart Listener — Analysis Driver

Responsibility:
    - Receive the growing live transcript periodically
    - Skip calls that add too little new text (change gate)
    - Detect questions locally, drop near-duplicates within the cooldown
    - Enqueue survivors, announce them, and trigger bounded dispatch
    - Expose queue queries / acknowledgement to the UI layer

Flow per qualifying call:
    transcript → detect_questions → is_duplicate → AnswerQueue.enqueue
               → on_new_question(item) → AnswerQueue.dispatch

This module does NOT:
    - Call providers itself (AnswerQueue → AnswerGenerator does)
    - Capture or transcribe audio
    - Raise detection errors to the caller (they are logged)
"""

import logging
from typing import Any

from src.answer_queue import AnswerQueue, ItemCallback, QuestionItem, invoke_callback
from src.config import ListenerConfig
from src.llm.router import AnswerGenerator
from src.nlp.deduplicator import is_duplicate
from src.nlp.question_detector import MIN_TEXT_CHARS, detect_questions

logger = logging.getLogger("smartlistener.listener")


class SmartListener:
    """
    Owns one AnswerQueue plus the change-gate / re-entrancy state.

    Args:
        config:           Listener configuration (defaults from ListenerConfig()).
        answer_generator: Async ``question -> answer`` callable; defaults to
                          an AnswerGenerator bound to ``config``.
        queue:            Pre-built AnswerQueue (overrides answer_generator).
    """

    def __init__(
        self,
        config: ListenerConfig | None = None,
        *,
        answer_generator: Any = None,
        queue: AnswerQueue | None = None,
    ):
        self._config = config or ListenerConfig()
        if queue is None:
            queue = AnswerQueue(
                answer_generator or AnswerGenerator(self._config),
                max_concurrent=self._config.max_concurrent_responses,
            )
        self._queue = queue
        self._last_analyzed_text = ""
        self._is_analyzing = False

    @property
    def config(self) -> ListenerConfig:
        return self._config

    @property
    def queue(self) -> AnswerQueue:
        return self._queue

    @property
    def is_analyzing(self) -> bool:
        return self._is_analyzing

    # ------------------------------------------------------------------
    # Change gate
    # ------------------------------------------------------------------

    def _has_meaningful_change(self, text: str, delta_chars: int) -> bool:
        normalized = text.strip().lower()
        last = self._last_analyzed_text.strip().lower()

        if normalized == last:
            return False
        if last and normalized.startswith(last) and len(normalized) - len(last) < delta_chars:
            return False
        return True

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(
        self,
        transcript_text: str,
        config: ListenerConfig | None = None,
        on_new_question: ItemCallback | None = None,
        on_response_ready: ItemCallback | None = None,
    ) -> list[QuestionItem]:
        """
        Analyze the current transcript and queue newly detected questions.

        Args:
            transcript_text:   Full transcript so far.
            config:            Per-call override (language, thresholds).
            on_new_question:   Called once per newly queued item (pending).
            on_response_ready: Called once per item when it resolves.

        Returns:
            Snapshots of the items queued by this call (empty when gated).
        """
        if self._is_analyzing:
            logger.debug("Analysis already running; call skipped.")
            return []
        if not transcript_text or len(transcript_text.strip()) < MIN_TEXT_CHARS:
            return []

        cfg = config or self._config
        if not self._has_meaningful_change(transcript_text, cfg.analysis_delta_chars):
            return []

        self._is_analyzing = True
        self._last_analyzed_text = transcript_text
        new_items: list[QuestionItem] = []

        try:
            questions = detect_questions(transcript_text, cfg.language)
            if not questions:
                return new_items

            known: list[QuestionItem] = list(self._queue.get_queue())
            for question in questions:
                if is_duplicate(
                    question,
                    known,
                    cfg.question_cooldown_ms,
                    similarity_threshold=cfg.similarity_threshold,
                ):
                    continue

                item = self._queue.enqueue(question, on_response_ready=on_response_ready)
                known.append(item)
                new_items.append(item)

                invoke_callback(on_new_question, item, self._queue.track)
                self._queue.dispatch()

            if new_items:
                logger.info("%d new question(s) queued.", len(new_items))
        except Exception as exc:
            logger.error("Analysis error: %s", exc, exc_info=True)
        finally:
            self._is_analyzing = False

        return new_items

    # ------------------------------------------------------------------
    # Queue facade
    # ------------------------------------------------------------------

    def get_queue(self) -> tuple[QuestionItem, ...]:
        return self._queue.get_queue()

    def mark_viewed(self, question_id: int) -> None:
        self._queue.mark_viewed(question_id)

    def mark_all_viewed(self) -> None:
        self._queue.mark_all_viewed()

    def get_unviewed_count(self) -> int:
        return self._queue.get_unviewed_count()

    def clear(self) -> None:
        """Drop every queued item and forget the last analyzed text."""
        self._queue.clear()
        self._last_analyzed_text = ""

    def reset(self) -> None:
        """Forget the last analyzed text and release the re-entrancy guard.

        Queue contents are kept.
        """
        self._last_analyzed_text = ""
        self._is_analyzing = False
