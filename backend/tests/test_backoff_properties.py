import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

"""
Property-based tests for the BackoffExecutor.

**Property: Rate-limit failures are retried with capped exponential delays**
**Property: Any other failure propagates on its first occurrence**
"""

import asyncio
import logging
from typing import List

import pytest
from hypothesis import given, settings, strategies as st

from inventory_agent.agent.retry import (
    BackoffExecutor,
    MaxRetriesExceededError,
    compute_backoff_delay_ms,
)

from fakes import FakeAuthError, FakeRateLimitError, SleepRecorder


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class FlakyOperation:
    """Fails with the given errors in order, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.attempts = 0

    async def __call__(self):
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


# =============================================================================
# Delay schedule
# =============================================================================

@settings(max_examples=100)
@given(
    attempt=st.integers(min_value=1, max_value=40),
    base=st.integers(min_value=1, max_value=5000),
    cap=st.integers(min_value=1, max_value=60000),
)
def test_delay_is_exponential_and_capped(attempt: int, base: int, cap: int):
    """
    **Property: Rate-limit failures are retried with capped exponential delays**

    The delay after the n-th failed attempt SHALL be min(base * 2**n, cap).
    """
    delay = compute_backoff_delay_ms(attempt, base, cap)
    assert delay == min(base * 2 ** attempt, cap)
    assert delay <= cap


def test_default_schedule_doubles_from_two_seconds():
    delays = [compute_backoff_delay_ms(attempt) for attempt in range(1, 7)]
    assert delays == [2000, 4000, 8000, 16000, 30000, 30000]


# =============================================================================
# Retry behaviour
# =============================================================================

@settings(max_examples=50, deadline=None)
@given(max_retries=st.integers(min_value=1, max_value=8))
def test_persistent_rate_limit_exhausts_exactly_max_retries(max_retries: int):
    """
    **Property: Rate-limit failures are retried with capped exponential delays**

    An operation that is always rate limited SHALL be attempted exactly
    max_retries times, then MaxRetriesExceededError SHALL be raised.
    """
    sleeper = SleepRecorder()
    executor = BackoffExecutor(max_retries=max_retries, sleep=sleeper)
    operation = FlakyOperation([FakeRateLimitError() for _ in range(max_retries + 5)])

    with pytest.raises(MaxRetriesExceededError) as exc_info:
        asyncio.run(executor.run(operation))

    assert operation.attempts == max_retries
    assert exc_info.value.attempts == max_retries
    assert isinstance(exc_info.value.last_error, FakeRateLimitError)
    assert sleeper.delays == [
        compute_backoff_delay_ms(attempt) / 1000 for attempt in range(1, max_retries)
    ]


@settings(max_examples=30, deadline=None)
@given(max_retries=st.integers(min_value=1, max_value=8))
def test_non_rate_limit_error_is_not_retried(max_retries: int):
    """
    **Property: Any other failure propagates on its first occurrence**
    """
    sleeper = SleepRecorder()
    executor = BackoffExecutor(max_retries=max_retries, sleep=sleeper)
    operation = FlakyOperation([FakeAuthError()])

    with pytest.raises(FakeAuthError):
        asyncio.run(executor.run(operation))

    assert operation.attempts == 1
    assert sleeper.delays == []


def test_value_error_propagates_unchanged():
    executor = BackoffExecutor(sleep=SleepRecorder())
    operation = FlakyOperation([ValueError("bad payload")])

    with pytest.raises(ValueError, match="bad payload"):
        asyncio.run(executor.run(operation))
    assert operation.attempts == 1


def test_status_digits_in_message_are_not_a_rate_limit():
    sleeper = SleepRecorder()
    executor = BackoffExecutor(max_retries=3, sleep=sleeper)
    operation = FlakyOperation([ValueError("maximum context length is 4290 tokens")])

    with pytest.raises(ValueError, match="4290"):
        asyncio.run(executor.run(operation))

    assert operation.attempts == 1
    assert sleeper.delays == []


def test_plain_lambda_returning_coroutine_is_awaited_and_retried():
    sleeper = SleepRecorder()
    executor = BackoffExecutor(max_retries=3, sleep=sleeper)
    operation = FlakyOperation([FakeRateLimitError()], result="answer")

    result = asyncio.run(executor.run(lambda: operation()))

    assert result == "answer"
    assert operation.attempts == 2
    assert sleeper.delays == [2.0]


def test_two_rate_limits_then_success_waits_two_then_four_seconds():
    sleeper = SleepRecorder()
    executor = BackoffExecutor(max_retries=3, sleep=sleeper)
    operation = FlakyOperation([FakeRateLimitError(), FakeRateLimitError()], result="answer")

    handler = ListHandler()
    retry_logger = logging.getLogger("inventory_agent.agent.retry")
    retry_logger.addHandler(handler)
    try:
        result = asyncio.run(executor.run(operation))
    finally:
        retry_logger.removeHandler(handler)

    assert result == "answer"
    assert operation.attempts == 3
    assert sleeper.delays == [2.0, 4.0]

    warnings = [r for r in handler.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert warnings[0].getMessage() == "Rate limited, retrying in 2000ms (attempt 1/3)"
    assert warnings[1].getMessage() == "Rate limited, retrying in 4000ms (attempt 2/3)"


def test_rate_limit_detected_from_message_text():
    sleeper = SleepRecorder()
    executor = BackoffExecutor(max_retries=2, sleep=sleeper)
    operation = FlakyOperation([RuntimeError("RESOURCE_EXHAUSTED: quota")], result=42)

    assert asyncio.run(executor.run(operation)) == 42
    assert sleeper.delays == [2.0]


def test_custom_base_and_cap_are_respected():
    sleeper = SleepRecorder()
    executor = BackoffExecutor(max_retries=5, base_delay_ms=100, max_delay_ms=500, sleep=sleeper)
    operation = FlakyOperation([FakeRateLimitError() for _ in range(4)])

    asyncio.run(executor.run(operation))

    assert sleeper.delays == [0.2, 0.4, 0.5, 0.5]


@pytest.mark.parametrize("max_retries", [0, -1])
def test_no_attempt_allowed_raises_immediately(max_retries: int):
    executor = BackoffExecutor(max_retries=max_retries, sleep=SleepRecorder())
    operation = FlakyOperation([])

    with pytest.raises(MaxRetriesExceededError) as exc_info:
        asyncio.run(executor.run(operation))

    assert operation.attempts == 0
    assert exc_info.value.attempts == 0
