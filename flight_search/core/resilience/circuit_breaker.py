"""
In-Process Circuit Breaker

MECHANISM OF ACTION:
-------------------
- **CLOSED**: Requests are allowed.
  - On Failure: consecutive failure counter increments.
  - On Success: counter resets to 0.
  - Threshold Reached: state transitions to OPEN.

- **OPEN**: Requests are rejected with ``CircuitBreakerOpenError`` without
  invoking the work.
  - Recovery: the first call after ``half_open_after_ms`` moves the circuit
    to HALF-OPEN. Nothing happens on a timer.

- **HALF-OPEN**: Probing mode.
  - Exactly one probe runs at a time; concurrent callers are rejected.
  - On Success: probe success counter increments; reaching
    ``success_threshold`` closes the circuit and resets all counters.
  - On Failure: the circuit reopens immediately and the cooldown restarts.

State lives in process memory for the lifetime of the breaker. The event
loop is single-threaded and state is only touched between awaits, so no
locking is needed.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from flight_search.core.config.constants import CircuitState, Stage
from flight_search.core.exceptions.resilience import CircuitBreakerOpenError
from flight_search.core.logging.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int = 3
    half_open_after_ms: int = 10_000
    success_threshold: int = 1

    def __post_init__(self):
        if self.failure_threshold < 1 or self.success_threshold < 1:
            raise ValueError("circuit breaker thresholds must be at least 1")
        if self.half_open_after_ms < 0:
            raise ValueError("half_open_after_ms must not be negative")


@dataclass(frozen=True)
class StateChange:
    """Reported to ``on_state_change`` on every transition."""

    name: str
    previous: CircuitState
    current: CircuitState
    consecutive_failures: int


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker for one operation key.

    Usage:
        breaker = CircuitBreaker("amadeus.api", CircuitBreakerConfig(failure_threshold=3))
        result = await breaker.execute(lambda: client.get(url))
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Callable[[StateChange], None] | None = None,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._on_state_change = on_state_change

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._half_open_successes = 0
        self._opened_at: float | None = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def _transition(self, new_state: CircuitState) -> None:
        previous = self._state
        if previous == new_state:
            return
        self._state = new_state

        log = logger.error if new_state == CircuitState.OPEN else logger.info
        log(
            "Circuit state changed",
            stage=Stage.CIRCUIT_BREAKER.value,
            operation_key=self.name,
            previous=previous.value,
            current=new_state.value,
            consecutive_failures=self._consecutive_failures,
        )
        if self._on_state_change is not None:
            self._on_state_change(
                StateChange(
                    name=self.name,
                    previous=previous,
                    current=new_state,
                    consecutive_failures=self._consecutive_failures,
                )
            )

    def _open(self) -> None:
        self._opened_at = self._clock()
        self._half_open_successes = 0
        self._transition(CircuitState.OPEN)

    def _cooldown_elapsed(self) -> bool:
        elapsed_ms = (self._clock() - self._opened_at) * 1000
        return elapsed_ms >= self.config.half_open_after_ms

    def _reject(self, reason: str) -> CircuitBreakerOpenError:
        return CircuitBreakerOpenError(
            f"Circuit open for '{self.name}'",
            details={"operation_key": self.name, "reason": reason},
        )

    def _acquire(self) -> bool:
        """Admit or reject a call. Returns True when the call is the half-open probe."""
        if self._state == CircuitState.OPEN:
            if not self._cooldown_elapsed():
                raise self._reject("cooldown")
            self._transition(CircuitState.HALF_OPEN)

        if self._state == CircuitState.HALF_OPEN:
            if self._probe_in_flight:
                raise self._reject("probe_in_flight")
            self._probe_in_flight = True
            return True

        return False

    async def execute(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``work`` if the circuit admits it.

        Raises:
            CircuitBreakerOpenError: Circuit open or a probe already running
        """
        is_probe = self._acquire()
        try:
            result = await work()
        except Exception:
            self.record_failure(is_probe)
            raise
        finally:
            if is_probe:
                self._probe_in_flight = False
        self.record_success(is_probe)
        return result

    # Only the probe decides a half-open circuit. A call admitted while closed
    # that finishes after the circuit left CLOSED is ignored.

    def record_success(self, is_probe: bool = False) -> None:
        if is_probe and self._state == CircuitState.HALF_OPEN:
            self._half_open_successes += 1
            if self._half_open_successes >= self.config.success_threshold:
                self._consecutive_failures = 0
                self._half_open_successes = 0
                self._opened_at = None
                self._transition(CircuitState.CLOSED)
        elif not is_probe and self._state == CircuitState.CLOSED:
            self._consecutive_failures = 0

    def record_failure(self, is_probe: bool = False) -> None:
        if is_probe and self._state == CircuitState.HALF_OPEN:
            self._consecutive_failures += 1
            self._open()
        elif not is_probe and self._state == CircuitState.CLOSED:
            self._consecutive_failures += 1
            logger.debug(
                "Circuit recorded failure",
                stage=Stage.CIRCUIT_BREAKER.value,
                operation_key=self.name,
                failures=self._consecutive_failures,
                threshold=self.config.failure_threshold,
            )
            if self._consecutive_failures >= self.config.failure_threshold:
                self._open()

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "consecutive_failures": self._consecutive_failures,
            "half_open_successes": self._half_open_successes,
            "opened_at": self._opened_at,
            "failure_threshold": self.config.failure_threshold,
            "half_open_after_ms": self.config.half_open_after_ms,
            "success_threshold": self.config.success_threshold,
        }
