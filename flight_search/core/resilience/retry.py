"""
Retry Scheduler

Re-invokes a failing async operation with capped exponential backoff.

Delay before attempt n (1-based):
    n == 1  ->  0
    n >= 2  ->  min(base_delay_ms * multiplier ** (n - 2), max_delay_ms)

With the defaults (base 200ms, multiplier 2, cap 2000ms) three attempts are
scheduled at delays [0, 200, 400]. There is no jitter.

The loop itself is driven by tenacity's ``AsyncRetrying``; this module only
supplies the stop rule, the wait schedule and the retry predicate, and
translates tenacity's ``RetryError`` into ``RetryExhaustedError``.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
)

from flight_search.core.config.constants import (
    DEFAULT_RETRY_MAX_DELAY_MS,
    DEFAULT_RETRY_MULTIPLIER,
    Stage,
)
from flight_search.core.exceptions.resilience import RetryExhaustedError
from flight_search.core.logging.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

RetryCondition = Callable[[BaseException], bool]


@dataclass(frozen=True)
class RetryConfig:
    """
    Retry schedule.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay_ms: Delay before the second attempt
        max_delay_ms: Upper bound for any delay
        multiplier: Growth factor between consecutive delays
        condition: Predicate deciding whether a failure is retried;
            None retries every exception
    """

    max_attempts: int = 2
    base_delay_ms: int = 200
    max_delay_ms: int = DEFAULT_RETRY_MAX_DELAY_MS
    multiplier: float = DEFAULT_RETRY_MULTIPLIER
    condition: RetryCondition | None = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("retry delays must not be negative")


@dataclass(frozen=True)
class RetryAttempt:
    """A scheduled re-attempt: which attempt comes next, after what delay, and why."""

    index: int
    delay_ms: float
    error: BaseException


class RetryScheduler:
    """
    Capped exponential backoff around an async callable.

    Usage:
        scheduler = RetryScheduler(RetryConfig(max_attempts=3))
        result = await scheduler.execute(lambda: client.get(url))
    """

    def __init__(
        self,
        config: RetryConfig,
        name: str = "operation",
        on_retry: Callable[[RetryAttempt], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.name = name
        self._on_retry = on_retry
        self._sleep = sleep

    def delay_for_attempt(self, attempt: int) -> float:
        """Delay in milliseconds before the given 1-based attempt."""
        if attempt <= 1:
            return 0
        delay = self.config.base_delay_ms * self.config.multiplier ** (attempt - 2)
        return min(delay, self.config.max_delay_ms)

    def _wait(self, retry_state: RetryCallState) -> float:
        # tenacity passes the attempt that just failed; it wants seconds
        return self.delay_for_attempt(retry_state.attempt_number + 1) / 1000

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        attempt = RetryAttempt(
            index=retry_state.attempt_number + 1,
            delay_ms=self.delay_for_attempt(retry_state.attempt_number + 1),
            error=error,
        )
        logger.warning(
            "Retrying operation",
            stage=Stage.RETRY.value,
            operation_key=self.name,
            attempt=attempt.index,
            max_attempts=self.config.max_attempts,
            delay_ms=attempt.delay_ms,
            error_type=type(error).__name__,
            error=str(error),
        )
        if self._on_retry is not None:
            self._on_retry(attempt)

    def _retry_predicate(self):
        if self.config.condition is None:
            return retry_if_exception_type(Exception)
        return retry_if_exception(self.config.condition)

    async def execute(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Invoke ``work`` until it succeeds or attempts run out.

        Raises:
            RetryExhaustedError: Every attempt failed with a retryable error.
                Chained from the final failure.
            Exception: A failure the condition rejects, unchanged.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=self._wait,
            retry=self._retry_predicate(),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=False,
        )
        try:
            return await retrying(work)
        except RetryError as exc:
            last_attempt = exc.last_attempt
            last_error = last_attempt.exception()
            raise RetryExhaustedError(
                f"Operation '{self.name}' failed after {last_attempt.attempt_number} attempts",
                last_error=last_error,
                attempts=last_attempt.attempt_number,
                details={"operation_key": self.name},
            ) from last_error
