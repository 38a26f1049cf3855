"""
Retry policy for model calls.

Wraps a single-attempt coroutine in a bounded retry loop:

- at most ``max_attempts`` attempts (default 3)
- the nth retry waits ``base_delay * n`` seconds (15s, 30s for the defaults)
- only errors classified as transient are retried; anything else is
  re-raised untouched on the first failure
- an optional overall deadline bounds the whole loop, sleeps included

Usage:
    policy = RetryPolicy(max_attempts=3, base_delay=15.0)
    text = await policy.run(lambda: session.run(prompt), timeout=600)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import anthropic
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from shadow.ai.errors import (
    DeadlineExceededError,
    EmptyResponseError,
    RateLimitError,
    RetriesExhaustedError,
)

if TYPE_CHECKING:
    from shadow.config.settings import RetryConfig

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 15.0

RETRYABLE_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "429",
    "timeout",
    "temporary",
    "connection",
    "deadline exceeded",
)

# Transport errors whose messages ("Request timed out.") miss the patterns above.
_RETRYABLE_TYPES: tuple[type[BaseException], ...] = (
    EmptyResponseError,
    RateLimitError,
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    TimeoutError,
    ConnectionError,
)

RetryCallback = Callable[[int, int, float, BaseException], None]
SleepFunc = Callable[[float], Awaitable[None]]


def is_retryable_error(error: BaseException | None) -> bool:
    """
    Decide whether an error is transient.

    Args:
        error: The failure raised by an attempt.

    Returns:
        True for empty responses, rate limits, timeouts and connection
        failures; False for everything else, including cancellation.
    """
    if error is None or isinstance(error, asyncio.CancelledError):
        return False

    if isinstance(error, _RETRYABLE_TYPES):
        return True

    message = str(error).lower()
    return any(pattern in message for pattern in RETRYABLE_PATTERNS)


class RetryPolicy:
    """
    Bounded linear backoff over an async callable.

    The sleep function is injectable so tests can record delays instead
    of waiting; the default ``asyncio.sleep`` is interrupted promptly
    when the surrounding task is cancelled or the deadline fires.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: SleepFunc | None = None,
        classifier: Callable[[BaseException], bool] = is_retryable_error,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep or asyncio.sleep
        self._classifier = classifier

    @classmethod
    def from_config(cls, config: RetryConfig, sleep: SleepFunc | None = None) -> RetryPolicy:
        """Build a policy from the retry section of the settings."""
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_seconds,
            sleep=sleep,
        )

    def delays(self) -> list[float]:
        """Backoff schedule: the delay before each retry, in order."""
        return [self.base_delay * attempt for attempt in range(1, self.max_attempts)]

    async def run(
        self,
        fn: Callable[[], Awaitable[T]],
        *,
        timeout: float | None = None,
        operation: str = "analysis",
        on_retry: RetryCallback | None = None,
    ) -> T:
        """
        Run ``fn`` under the policy.

        Args:
            fn: Zero-argument coroutine factory performing one attempt.
            timeout: Overall deadline in seconds, retries and sleeps included.
            operation: Name used in logs and deadline errors.
            on_retry: Called as (attempt, max_attempts, delay, error) before each sleep.

        Returns:
            The first successful attempt's result.

        Raises:
            RetriesExhaustedError: Every attempt failed with a retryable error.
            DeadlineExceededError: The overall deadline expired.
            Exception: The first non-retryable error, unchanged.
        """
        if timeout is None:
            return await self._attempt_loop(fn, operation, on_retry)

        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                return await self._attempt_loop(fn, operation, on_retry)
        except TimeoutError:
            # a timeout raised by an attempt itself is not the overall deadline
            if not deadline.expired():
                raise
            logger.warning("retry_deadline_exceeded", operation=operation, timeout=timeout)
            raise DeadlineExceededError(timeout, operation) from None

    async def _attempt_loop(
        self,
        fn: Callable[[], Awaitable[T]],
        operation: str,
        on_retry: RetryCallback | None,
    ) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.base_delay, increment=self.base_delay),
            retry=retry_if_exception(self._classifier),
            before_sleep=self._before_sleep(operation, on_retry),
            sleep=self._sleep,
            reraise=False,
        )

        try:
            return await retrying(fn)
        except RetryError as exc:
            last_attempt = exc.last_attempt
            last_error = last_attempt.exception()
            logger.error(
                "retries_exhausted",
                operation=operation,
                attempts=last_attempt.attempt_number,
                error=str(last_error)[:200],
            )
            raise RetriesExhaustedError(last_attempt.attempt_number, last_error) from last_error

    def _before_sleep(
        self,
        operation: str,
        on_retry: RetryCallback | None,
    ) -> Callable[[RetryCallState], None]:
        def hook(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0

            logger.warning(
                "analysis_retry",
                operation=operation,
                attempt=retry_state.attempt_number,
                max_attempts=self.max_attempts,
                delay=delay,
                error=str(error)[:200],
            )

            if on_retry is not None and error is not None:
                on_retry(retry_state.attempt_number, self.max_attempts, delay, error)

        return hook
