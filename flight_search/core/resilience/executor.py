"""
Resilience Executor

Single entry point for running provider work under the resilience pipeline.

Policies:
---------
- ``execute(key, work)`` without options reuses a cached policy per
  operation key. The cache holds at most ``MAX_CACHED_POLICIES`` entries;
  the oldest inserted entry is evicted first.
- ``execute(key, work, options)`` builds a transient policy for that call
  only, never cached. Its breaker is private to the call unless
  ``options.share_circuit_breaker`` is set.

Circuit breakers:
-----------------
Breakers backing cached policies, and shared breakers, live in a registry
keyed by operation key for the lifetime of the executor. Evicting a policy
does not reset its breaker. The first caller that creates a key's breaker
fixes its configuration.

Failures:
---------
Any failure is re-raised as ``ResilienceFailure`` carrying the original
error, the layer that produced it and the elapsed time.
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from flight_search.core.config.constants import MAX_CACHED_POLICIES, FailurePolicy, Stage
from flight_search.core.config.settings import ResilienceSettings, get_settings
from flight_search.core.exceptions.resilience import (
    CircuitBreakerOpenError,
    OperationTimeoutError,
    ResilienceFailure,
    RetryExhaustedError,
)
from flight_search.core.logging.logger import get_logger
from flight_search.core.resilience.circuit_breaker import CircuitBreaker, StateChange
from flight_search.core.resilience.composer import (
    ComposedPolicy,
    ResilienceOptions,
    compose_policy,
)

T = TypeVar("T")

logger = get_logger(__name__)


def classify_failure(error: BaseException) -> FailurePolicy:
    """Name the layer that produced ``error``."""
    if isinstance(error, CircuitBreakerOpenError):
        return FailurePolicy.CIRCUIT_BREAKER
    if isinstance(error, OperationTimeoutError):
        return FailurePolicy.TIMEOUT
    if isinstance(error, RetryExhaustedError):
        return FailurePolicy.RETRY
    return FailurePolicy.UNKNOWN


class ResilienceExecutor:
    """
    Runs async work under cached or per-call resilience policies.

    Usage:
        executor = ResilienceExecutor()
        offers = await executor.execute("amadeus.api", lambda: client.get(url))
    """

    def __init__(
        self,
        settings: ResilienceSettings | None = None,
        max_cached_policies: int = MAX_CACHED_POLICIES,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Callable[[StateChange], None] | None = None,
    ):
        settings = settings or get_settings().resilience
        self._defaults = ResilienceOptions.from_settings(settings)
        self._max_cached_policies = max_cached_policies
        self._sleep = sleep
        self._clock = clock
        self._on_state_change = on_state_change

        self._policies: OrderedDict[str, ComposedPolicy] = OrderedDict()
        self._breakers: dict[str, CircuitBreaker] = {}

    @property
    def cached_policy_keys(self) -> list[str]:
        return list(self._policies)

    def _get_breaker(self, operation_key: str, options: ResilienceOptions) -> CircuitBreaker:
        breaker = self._breakers.get(operation_key)
        if breaker is None:
            breaker = CircuitBreaker(
                operation_key,
                options.breaker_config(),
                clock=self._clock,
                on_state_change=self._on_state_change,
            )
            self._breakers[operation_key] = breaker
        return breaker

    def _build_policy(self, operation_key: str, options: ResilienceOptions) -> ComposedPolicy:
        return compose_policy(
            operation_key,
            options,
            breaker=(
                self._get_breaker(operation_key, options)
                if options.enable_circuit_breaker
                else None
            ),
            sleep=self._sleep,
            clock=self._clock,
            on_state_change=self._on_state_change,
        )

    def _get_policy(self, operation_key: str) -> ComposedPolicy:
        policy = self._policies.get(operation_key)
        if policy is not None:
            return policy

        policy = self._build_policy(operation_key, self._defaults)
        if len(self._policies) >= self._max_cached_policies:
            evicted_key, _ = self._policies.popitem(last=False)
            logger.debug(
                "Evicted cached resilience policy",
                stage=Stage.RESILIENCE.value,
                evicted_key=evicted_key,
                max_cached_policies=self._max_cached_policies,
            )
        self._policies[operation_key] = policy
        return policy

    def _transient_policy(
        self, operation_key: str, options: ResilienceOptions
    ) -> ComposedPolicy:
        resolved = options.merged_over(self._defaults)
        if resolved.share_circuit_breaker:
            return self._build_policy(operation_key, resolved)
        return compose_policy(
            operation_key,
            resolved,
            sleep=self._sleep,
            clock=self._clock,
            on_state_change=self._on_state_change,
        )

    async def execute(
        self,
        operation_key: str,
        work: Callable[[], Awaitable[T]],
        options: ResilienceOptions | None = None,
    ) -> T:
        """
        Run ``work`` under the policy for ``operation_key``.

        Raises:
            ResilienceFailure: On any failure, chained from the original error
        """
        policy = (
            self._get_policy(operation_key)
            if options is None
            else self._transient_policy(operation_key, options)
        )

        started = time.perf_counter()
        try:
            result = await policy.execute(work)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000
            classification = classify_failure(exc)
            logger.error(
                "Resilient operation failed",
                stage=Stage.RESILIENCE.value,
                operation_key=operation_key,
                classification=classification.value,
                elapsed_ms=round(elapsed_ms, 2),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise ResilienceFailure(
                f"Operation '{operation_key}' failed: {exc}",
                original_error=exc,
                classification=classification.value,
                elapsed_ms=elapsed_ms,
                operation_key=operation_key,
            ) from exc

        logger.debug(
            "Resilient operation succeeded",
            stage=Stage.RESILIENCE.value,
            operation_key=operation_key,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result

    async def execute_or_fallback(
        self,
        operation_key: str,
        work: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]],
        options: ResilienceOptions | None = None,
    ) -> T:
        """
        Like ``execute`` but returns ``fallback()`` when the protected call fails.

        An error raised by the fallback itself propagates to the caller.
        """
        try:
            return await self.execute(operation_key, work, options)
        except ResilienceFailure as failure:
            logger.warning(
                "Using fallback after resilient operation failed",
                stage=Stage.RESILIENCE.value,
                operation_key=operation_key,
                classification=failure.classification,
            )
            try:
                return await fallback()
            except Exception as exc:
                logger.error(
                    "Fallback failed",
                    stage=Stage.RESILIENCE.value,
                    operation_key=operation_key,
                    error_type=type(exc).__name__,
                    exc_info=True,
                )
                raise

    def get_circuit_states(self) -> dict[str, dict[str, Any]]:
        """Snapshot of every registered circuit breaker, keyed by operation key."""
        return {key: breaker.snapshot() for key, breaker in self._breakers.items()}
