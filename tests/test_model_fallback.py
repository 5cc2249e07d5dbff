"""
tests/test_model_fallback.py
=============================
Retry / Model Fallback Executor Tests

Test categories:
    1. Retryable error classification (status, code, message, type name)
    2. Back-off delay computation and capping
    3. Ordered fallback across models (retryable vs non-retryable)
    4. Quota exhaustion after the exact attempt budget
    5. Progress events and progress-callback isolation
    6. Argument edge cases (empty model list, negative retries)

All tests are offline — the back-off sleep is injected.
"""

import os
import sys
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.errors import QuotaExhaustedError
from src.model_fallback import (
    FallbackProgress,
    RetryConfig,
    execute_with_fallback,
    is_retryable_error,
)


# ===================================================================
# Test doubles
# ===================================================================

class StatusError(Exception):
    """Provider-style error carrying an HTTP status."""

    def __init__(self, status, message="provider error"):
        self.status = status
        super().__init__(message)


class CodeError(Exception):
    def __init__(self, code, message="provider error"):
        self.code = code
        super().__init__(message)


class RateLimitError(Exception):
    """Same type name as openai.RateLimitError."""


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedOperation:
    """Per-model behaviour: an exception to raise or a value to return."""

    def __init__(self, script):
        self.script = script
        self.calls: list[str] = []

    async def __call__(self, model: str):
        self.calls.append(model)
        outcome = self.script[model]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


# ===================================================================
# 1. Classification
# ===================================================================

class TestIsRetryableError(unittest.TestCase):

    def test_status_429(self):
        self.assertTrue(is_retryable_error(StatusError(429)))

    def test_status_503(self):
        self.assertTrue(is_retryable_error(StatusError(503)))

    def test_status_code_attribute(self):
        exc = Exception("boom")
        exc.status_code = 429
        self.assertTrue(is_retryable_error(exc))

    def test_resource_exhausted_code(self):
        self.assertTrue(is_retryable_error(CodeError("RESOURCE_EXHAUSTED")))

    def test_message_fragments(self):
        for message in (
            "Rate limit exceeded",
            "You exceeded your current QUOTA",
            "resource_exhausted",
            "Service temporarily unavailable",
            "HTTP 429 returned",
            "Too Many Requests",
        ):
            with self.subTest(message=message):
                self.assertTrue(is_retryable_error(Exception(message)))

    def test_rate_limit_error_type(self):
        self.assertTrue(is_retryable_error(RateLimitError("slow down")))

    def test_non_retryable(self):
        self.assertFalse(is_retryable_error(Exception("invalid api key")))
        self.assertFalse(is_retryable_error(StatusError(400, "bad request")))
        self.assertFalse(is_retryable_error(StatusError(500, "internal error")))

    def test_unhashable_code_is_not_retryable(self):
        self.assertFalse(is_retryable_error(CodeError({"reason": "INVALID_ARGUMENT"}, "bad request")))
        self.assertFalse(is_retryable_error(StatusError(["400"], "bad request")))

    def test_unhashable_code_still_checks_message(self):
        self.assertTrue(is_retryable_error(CodeError({"reason": "x"}, "Rate limit exceeded")))


# ===================================================================
# 2. Back-off delays
# ===================================================================

class TestRetryConfig(unittest.TestCase):

    def test_defaults(self):
        config = RetryConfig()
        self.assertEqual(config.max_retries, 2)
        self.assertEqual(config.initial_delay_ms, 1000)
        self.assertEqual(config.max_delay_ms, 5000)
        self.assertEqual(config.backoff_multiplier, 2.0)

    def test_exponential_growth_with_cap(self):
        config = RetryConfig(initial_delay_ms=1000, max_delay_ms=2500, backoff_multiplier=2)
        self.assertEqual(
            [config.delay_ms(attempt) for attempt in range(4)],
            [1000, 2000, 2500, 2500],
        )

    def test_immutable(self):
        config = RetryConfig()
        with self.assertRaises(Exception):
            config.max_retries = 5


# ===================================================================
# 3–5. Executor behaviour
# ===================================================================

class TestExecuteWithFallback(unittest.IsolatedAsyncioTestCase):

    async def test_first_attempt_success(self):
        operation = ScriptedOperation({"a": "answer"})
        sleep = RecordingSleep()
        events: list[FallbackProgress] = []

        result = await execute_with_fallback(
            operation, ["a", "b"], RetryConfig(), events.append, sleep=sleep,
        )

        self.assertEqual(result, "answer")
        self.assertEqual(operation.calls, ["a"])
        self.assertEqual(sleep.delays, [])
        self.assertEqual([e.status for e in events], ["trying", "success"])

    async def test_fallback_ordering(self):
        """429 on a (all attempts), non-retryable on b (once), success on c."""
        operation = ScriptedOperation({
            "a": StatusError(429, "Too Many Requests"),
            "b": ValueError("bad request"),
            "c": "answer from c",
        })
        sleep = RecordingSleep()
        events: list[FallbackProgress] = []
        config = RetryConfig(max_retries=2, initial_delay_ms=1000, max_delay_ms=5000)

        result = await execute_with_fallback(
            operation, ["a", "b", "c"], config, events.append, sleep=sleep,
        )

        self.assertEqual(result, "answer from c")
        self.assertEqual(operation.calls.count("a"), config.max_retries + 1)
        self.assertEqual(operation.calls.count("b"), 1)
        self.assertEqual(operation.calls, ["a", "a", "a", "b", "c"])
        self.assertEqual(sleep.delays, [1.0, 2.0])

        retrying = [e for e in events if e.status == "retrying"]
        self.assertEqual([e.model for e in retrying], ["a", "a"])
        self.assertEqual([e.delay_ms for e in retrying], [1000, 2000])

        switching = [e for e in events if e.status == "switching"]
        self.assertEqual(len(switching), 1)
        self.assertEqual((switching[0].model, switching[0].next_model), ("a", "b"))

        self.assertEqual(events[-1], FallbackProgress(status="success", model="c"))

    async def test_quota_exhaustion_after_exact_attempts(self):
        operation = ScriptedOperation({"a": StatusError(429)})
        sleep = RecordingSleep()

        with self.assertRaises(QuotaExhaustedError) as ctx:
            await execute_with_fallback(
                operation, ["a"], RetryConfig(max_retries=1), sleep=sleep,
            )

        self.assertTrue(ctx.exception.is_quota_error)
        self.assertTrue(ctx.exception.user_message)
        self.assertEqual(operation.calls, ["a", "a"])
        self.assertEqual(len(sleep.delays), 1)
        self.assertIsInstance(ctx.exception.last_error, StatusError)
        self.assertIs(ctx.exception.__cause__, ctx.exception.last_error)

    async def test_all_non_retryable_raises_quota_error(self):
        operation = ScriptedOperation({
            "a": ValueError("invalid key"),
            "b": ValueError("invalid key"),
        })
        sleep = RecordingSleep()
        events: list[FallbackProgress] = []

        with self.assertRaises(QuotaExhaustedError):
            await execute_with_fallback(
                operation, ["a", "b"], RetryConfig(max_retries=3), events.append, sleep=sleep,
            )

        self.assertEqual(operation.calls, ["a", "b"])
        self.assertEqual(sleep.delays, [])
        self.assertNotIn("retrying", [e.status for e in events])
        self.assertNotIn("switching", [e.status for e in events])

    async def test_no_switching_event_after_last_model(self):
        operation = ScriptedOperation({"a": StatusError(503)})
        events: list[FallbackProgress] = []

        with self.assertRaises(QuotaExhaustedError):
            await execute_with_fallback(
                operation, ["a"], RetryConfig(max_retries=0), events.append,
                sleep=RecordingSleep(),
            )

        self.assertEqual([e.status for e in events], ["trying"])

    async def test_recovers_on_retry(self):
        attempts = []

        async def flaky(model):
            attempts.append(model)
            if len(attempts) < 2:
                raise Exception("rate limit reached")
            return "ok"

        result = await execute_with_fallback(
            flaky, ["a", "b"], RetryConfig(max_retries=2), sleep=RecordingSleep(),
        )

        self.assertEqual(result, "ok")
        self.assertEqual(attempts, ["a", "a"])

    async def test_unhashable_code_moves_to_next_model(self):
        operation = ScriptedOperation({
            "a": CodeError({"reason": "INVALID_ARGUMENT"}, "bad request"),
            "b": "answer from b",
        })
        sleep = RecordingSleep()

        result = await execute_with_fallback(
            operation, ["a", "b"], RetryConfig(max_retries=2), sleep=sleep,
        )

        self.assertEqual(result, "answer from b")
        self.assertEqual(operation.calls, ["a", "b"])
        self.assertEqual(sleep.delays, [])

    async def test_progress_callback_errors_are_contained(self):
        def broken_callback(event):
            raise RuntimeError("ui went away")

        operation = ScriptedOperation({"a": "answer"})
        with self.assertLogs("smartlistener.model_fallback", level="WARNING"):
            result = await execute_with_fallback(
                operation, ["a"], RetryConfig(), broken_callback, sleep=RecordingSleep(),
            )
        self.assertEqual(result, "answer")

    async def test_trying_events_carry_position(self):
        operation = ScriptedOperation({"a": ValueError("nope"), "b": "ok"})
        events: list[FallbackProgress] = []

        await execute_with_fallback(
            operation, ["a", "b"], RetryConfig(max_retries=1), events.append,
            sleep=RecordingSleep(),
        )

        trying = [e for e in events if e.status == "trying"]
        self.assertEqual(
            [(e.model, e.model_index, e.total_models, e.attempt, e.max_attempts) for e in trying],
            [("a", 1, 2, 1, 2), ("b", 2, 2, 1, 2)],
        )


# ===================================================================
# 6. Argument edge cases
# ===================================================================

class TestExecutorArguments(unittest.IsolatedAsyncioTestCase):

    async def test_empty_model_list(self):
        operation = ScriptedOperation({})
        with self.assertRaises(QuotaExhaustedError) as ctx:
            await execute_with_fallback(operation, [], RetryConfig(), sleep=RecordingSleep())
        self.assertEqual(operation.calls, [])
        self.assertIsNone(ctx.exception.last_error)

    async def test_negative_max_retries(self):
        with self.assertRaises(ValueError):
            await execute_with_fallback(
                ScriptedOperation({"a": "x"}), ["a"], RetryConfig(max_retries=-1),
            )


if __name__ == "__main__":
    unittest.main()
