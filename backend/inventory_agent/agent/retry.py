"""
Exponential backoff for rate-limited upstream calls.

Wraps a zero-argument coroutine function and retries it only when it fails
with a rate-limit signal. The delay after the n-th failed attempt is
``min(base * 2**n, cap)``: 2s, 4s, 8s ... capped at 30s with the defaults.
There is no jitter.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
)

from .errors import is_rate_limit_error


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 30000


class MaxRetriesExceededError(Exception):
    """Raised when every allowed attempt failed with a rate-limit signal."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Max retries exceeded after {attempts} attempt(s)")


def compute_backoff_delay_ms(
    attempt: int,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
) -> int:
    """Delay to wait after the given 1-based failed attempt."""
    return min(base_delay_ms * (2 ** attempt), max_delay_ms)


class BackoffExecutor:
    """
    Retry policy shielding callers from transient rate limiting.

    Example:
        >>> executor = BackoffExecutor(max_retries=3)
        >>> message = await executor.run(lambda: model.invoke(history))
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._sleep = sleep

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Invoke ``operation``, retrying rate-limit failures with backoff.

        Raises:
            MaxRetriesExceededError: every attempt was rate limited, or no
                attempt was allowed at all.
            Exception: any non-rate-limit failure, unchanged, on first occurrence.
        """
        if self.max_retries <= 0:
            raise MaxRetriesExceededError(attempts=0)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self._wait,
            retry=retry_if_exception(is_rate_limit_error),
            before_sleep=self._log_retry,
            sleep=self._sleep,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await operation()
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            logger.error(
                "Giving up after %d rate-limited attempt(s): %s",
                exc.last_attempt.attempt_number,
                last_error,
            )
            raise MaxRetriesExceededError(
                attempts=exc.last_attempt.attempt_number,
                last_error=last_error,
            ) from last_error

    def _wait(self, retry_state: RetryCallState) -> float:
        delay_ms = compute_backoff_delay_ms(
            retry_state.attempt_number,
            self.base_delay_ms,
            self.max_delay_ms,
        )
        return delay_ms / 1000

    def _log_retry(self, retry_state: RetryCallState) -> None:
        delay_ms = compute_backoff_delay_ms(
            retry_state.attempt_number,
            self.base_delay_ms,
            self.max_delay_ms,
        )
        logger.warning(
            "Rate limited, retrying in %dms (attempt %d/%d)",
            delay_ms,
            retry_state.attempt_number,
            self.max_retries,
        )
