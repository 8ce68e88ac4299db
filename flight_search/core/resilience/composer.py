"""
Policy Composer

Builds the call pipeline for one operation key from timeout, circuit
breaker and retry layers:

    retry( circuit_breaker( timeout( work ) ) )

- The timeout bounds each individual attempt.
- The breaker sees every attempt, so a retried call can trip the circuit.
- Retry is outermost and schedules backoff between attempts.

Each layer can be switched off through ``ResilienceOptions``. With every
layer disabled the work is invoked directly.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, fields, replace
from functools import partial
from typing import TypeVar

from flight_search.core.config.settings import ResilienceSettings
from flight_search.core.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    StateChange,
)
from flight_search.core.resilience.retry import RetryCondition, RetryConfig, RetryScheduler
from flight_search.core.resilience.timeout import TimeoutGuard

T = TypeVar("T")


@dataclass(frozen=True)
class ResilienceOptions:
    """
    Per-call overrides. Fields left as None fall back to configured defaults.

    Attributes:
        share_circuit_breaker: Use the executor's long-lived breaker for the
            operation key instead of a breaker private to this call. Only
            meaningful when options are passed per call.
    """

    timeout_ms: int | None = None
    retry_attempts: int | None = None
    retry_base_delay_ms: int | None = None
    retry_max_delay_ms: int | None = None
    retry_multiplier: float | None = None
    retry_condition: RetryCondition | None = None
    failure_threshold: int | None = None
    half_open_after_ms: int | None = None
    success_threshold: int | None = None
    enable_timeout: bool = True
    enable_retry: bool = True
    enable_circuit_breaker: bool = True
    share_circuit_breaker: bool = False

    @classmethod
    def from_settings(cls, settings: ResilienceSettings) -> "ResilienceOptions":
        return cls(
            timeout_ms=settings.RES_TIMEOUT_MS,
            retry_attempts=settings.RES_RETRY_ATTEMPTS,
            retry_base_delay_ms=settings.RES_RETRY_BASE_MS,
            retry_max_delay_ms=settings.RES_RETRY_MAX_DELAY_MS,
            retry_multiplier=settings.RES_RETRY_MULTIPLIER,
            failure_threshold=settings.RES_CB_FAILURE_THRESHOLD,
            half_open_after_ms=settings.RES_CB_HALFOPEN_MS,
            success_threshold=settings.RES_CB_SUCCESS_THRESHOLD,
        )

    def merged_over(self, defaults: "ResilienceOptions") -> "ResilienceOptions":
        """Return ``defaults`` with every non-None field of self applied on top."""
        overrides = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
        return replace(defaults, **overrides)

    def breaker_config(self) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            failure_threshold=self.failure_threshold,
            half_open_after_ms=self.half_open_after_ms,
            success_threshold=self.success_threshold,
        )

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.retry_attempts,
            base_delay_ms=self.retry_base_delay_ms,
            max_delay_ms=self.retry_max_delay_ms,
            multiplier=self.retry_multiplier,
            condition=self.retry_condition,
        )


@dataclass(frozen=True)
class ComposedPolicy:
    """Immutable timeout/breaker/retry pipeline for one operation key."""

    name: str
    timeout: TimeoutGuard | None = None
    breaker: CircuitBreaker | None = None
    retry: RetryScheduler | None = None

    async def execute(self, work: Callable[[], Awaitable[T]]) -> T:
        call = work
        if self.timeout is not None:
            call = partial(self.timeout.execute, call)
        if self.breaker is not None:
            call = partial(self.breaker.execute, call)
        if self.retry is not None:
            return await self.retry.execute(call)
        return await call()


def compose_policy(
    name: str,
    options: ResilienceOptions,
    breaker: CircuitBreaker | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
    on_state_change: Callable[[StateChange], None] | None = None,
) -> ComposedPolicy:
    """
    Build a policy from fully resolved options.

    Args:
        name: Operation key, used in logs and error details
        options: Options with every numeric field populated
            (see ``ResilienceOptions.merged_over``)
        breaker: Existing breaker to reuse; a new one is created when None
            and the breaker layer is enabled
        sleep: Coroutine used for backoff delays
        clock: Monotonic clock for a newly created breaker
    """
    timeout = TimeoutGuard(options.timeout_ms, name=name) if options.enable_timeout else None

    if options.enable_circuit_breaker:
        if breaker is None:
            breaker = CircuitBreaker(
                name,
                options.breaker_config(),
                clock=clock,
                on_state_change=on_state_change,
            )
    else:
        breaker = None

    retry = (
        RetryScheduler(options.retry_config(), name=name, sleep=sleep)
        if options.enable_retry
        else None
    )

    return ComposedPolicy(name=name, timeout=timeout, breaker=breaker, retry=retry)
