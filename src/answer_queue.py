"""
src/answer_queue.py
====================
Answer Queue Coordinator — Smart Listener

Responsibility:
    - Own the list of QuestionItems (only writer of status / response)
    - Enforce the global concurrency cap on answer generation
    - Dispatch pending items in FIFO order as capacity frees up
    - Contain every per-item failure inside that item (status = error)
    - Notify exactly once per item when it resolves (ready | error)

Status transitions (forward only):
    pending → generating → ready
                         → error

Concurrency model:
    All state lives on one asyncio event loop. The in-flight counter is
    checked and incremented inside dispatch() with no await in between,
    so the cap can never be overshot. Completion of a generation task
    decrements the counter and immediately calls dispatch() again to
    backfill. clear() bumps an epoch so tasks started before the clear
    finish silently without touching the new queue.

This module does NOT:
    - Detect or deduplicate questions (see src.nlp)
    - Talk to any provider directly (the ``generate`` callable does)
    - Cancel in-flight network calls on clear()
"""

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from src.config import MAX_CONCURRENT_RESPONSES
from src.errors import QuotaExhaustedError
from src.model_fallback import is_retryable_error

logger = logging.getLogger("smartlistener.answer_queue")


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


class QuestionStatus(str, Enum):
    """Lifecycle states of a queued question."""

    PENDING = "pending"
    GENERATING = "generating"
    READY = "ready"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[QuestionStatus, set[QuestionStatus]] = {
    QuestionStatus.PENDING: {QuestionStatus.GENERATING},
    QuestionStatus.GENERATING: {QuestionStatus.READY, QuestionStatus.ERROR},
    QuestionStatus.READY: set(),
    QuestionStatus.ERROR: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class QuestionItem:
    """One detected question and its eventual answer."""

    id: int
    question: str
    status: QuestionStatus = QuestionStatus.PENDING
    response: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)
    viewed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "status": self.status.value,
            "response": self.response,
            "timestamp": self.timestamp.isoformat(),
            "viewed": self.viewed,
        }


def _quota_response(exc: QuotaExhaustedError) -> str:
    """Quota text only when the last failure was a rate limit or outage."""
    if exc.last_error is None or is_retryable_error(exc.last_error):
        return exc.user_message
    return f"Error: {exc.last_error}"


ItemCallback = Callable[[QuestionItem], Any]
AnswerFn = Callable[[str], Awaitable[str]]


def invoke_callback(
    callback: ItemCallback | None,
    item: QuestionItem,
    track: Callable[[Awaitable[Any]], Any] | None = None,
) -> None:
    """
    Call ``callback(item)`` and contain any exception.

    Coroutine results are scheduled on the running loop (through ``track``
    when given) so async observers never block the caller.
    """
    if callback is None:
        return
    try:
        result = callback(item)
        if inspect.isawaitable(result):
            if track is not None:
                track(result)
            else:
                asyncio.ensure_future(result)
    except Exception as exc:
        logger.error("Callback failed for Q%d: %s", item.id, exc, exc_info=True)


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class AnswerQueue:
    """
    Bounded, FIFO answer-generation queue.

    Args:
        generate:          Async callable ``question -> answer text``.
        max_concurrent:    Hard cap on items in ``generating`` state.
        on_response_ready: Default resolve callback for items enqueued
                           without their own.

    All methods must be called from the thread running the event loop.
    """

    def __init__(
        self,
        generate: AnswerFn,
        *,
        max_concurrent: int = MAX_CONCURRENT_RESPONSES,
        on_response_ready: ItemCallback | None = None,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")

        self._generate = generate
        self._max_concurrent = max_concurrent
        self._on_response_ready = on_response_ready

        self._items: list[QuestionItem] = []
        self._pending: deque[tuple[QuestionItem, ItemCallback | None]] = deque()
        self._active_count = 0
        self._id_counter = 0
        self._epoch = 0
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def generating_count(self) -> int:
        return sum(1 for item in self._items if item.status is QuestionStatus.GENERATING)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Enqueue / dispatch
    # ------------------------------------------------------------------

    def enqueue(
        self,
        question: str,
        *,
        on_response_ready: ItemCallback | None = None,
        timestamp: datetime | None = None,
    ) -> QuestionItem:
        """
        Append a new ``pending`` item and return a snapshot of it.

        Does not start generation; call ``dispatch()`` afterwards.
        """
        self._id_counter += 1
        item = QuestionItem(
            id=self._id_counter,
            question=question.strip(),
            timestamp=timestamp or _utcnow(),
        )
        self._items.append(item)
        self._pending.append((item, on_response_ready or self._on_response_ready))

        logger.info("Q%d queued: %s", item.id, item.question)
        return replace(item)

    def dispatch(self) -> int:
        """
        Start generation for pending items while capacity allows.

        Idempotent; safe to call at any time from the loop thread.

        Returns:
            Number of items promoted to ``generating`` by this call.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "dispatch() called without a running event loop; %d item(s) stay pending.",
                len(self._pending),
            )
            return 0

        started = 0
        while self._active_count < self._max_concurrent and self._pending:
            item, callback = self._pending.popleft()
            self._transition(item, QuestionStatus.GENERATING)
            self._active_count += 1
            started += 1

            task = loop.create_task(
                self._generate_for_item(item, callback, self._epoch),
                name=f"answer-q{item.id}",
            )
            self.track(task)

        if started:
            logger.debug(
                "Dispatched %d item(s); in flight=%d, pending=%d.",
                started, self._active_count, len(self._pending),
            )
        return started

    async def _generate_for_item(
        self,
        item: QuestionItem,
        callback: ItemCallback | None,
        epoch: int,
    ) -> None:
        try:
            try:
                answer = await self._generate(item.question)
            except QuotaExhaustedError as exc:
                logger.error("Q%d: quota exhausted: %s", item.id, exc)
                status, response = QuestionStatus.ERROR, _quota_response(exc)
            except Exception as exc:
                logger.error("Q%d: response error: %s", item.id, exc)
                status, response = QuestionStatus.ERROR, f"Error: {exc}"
            else:
                status, response = QuestionStatus.READY, answer

            if epoch != self._epoch:
                logger.info("Q%d finished after clear(); result discarded.", item.id)
                return

            item.response = response
            self._transition(item, status)
            invoke_callback(callback, replace(item), self.track)
        finally:
            if epoch == self._epoch:
                self._active_count -= 1
                self.dispatch()

    def _transition(self, item: QuestionItem, status: QuestionStatus) -> None:
        if status not in _ALLOWED_TRANSITIONS[item.status]:
            raise RuntimeError(
                f"Illegal status transition for Q{item.id}: "
                f"{item.status.value} -> {status.value}"
            )
        item.status = status

    def track(self, awaitable: Awaitable[Any]) -> asyncio.Future:
        """Schedule ``awaitable`` and keep a reference until it completes."""
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Queries and acknowledgement
    # ------------------------------------------------------------------

    def get_queue(self) -> tuple[QuestionItem, ...]:
        """Immutable snapshot: copies of every item in enqueue order."""
        return tuple(replace(item) for item in self._items)

    def get_item(self, question_id: int) -> QuestionItem | None:
        item = self._find(question_id)
        return replace(item) if item else None

    def _find(self, question_id: int) -> QuestionItem | None:
        for item in self._items:
            if item.id == question_id:
                return item
        return None

    def mark_viewed(self, question_id: int) -> None:
        item = self._find(question_id)
        if item:
            item.viewed = True

    def mark_all_viewed(self) -> None:
        for item in self._items:
            item.viewed = True

    def get_unviewed_count(self) -> int:
        """Count of ready answers the UI has not acknowledged yet."""
        return sum(
            1 for item in self._items
            if not item.viewed and item.status is QuestionStatus.READY
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """
        Discard all items, pending work and counters.

        In-flight generations keep running but their results are dropped.
        """
        discarded = len(self._items)
        self._epoch += 1
        self._items = []
        self._pending.clear()
        self._active_count = 0
        self._id_counter = 0
        logger.info("Queue cleared (%d item(s) discarded).", discarded)

    async def wait_idle(self) -> None:
        """Wait until every tracked generation and callback task is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Clear the queue and cancel whatever is still running."""
        self.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
