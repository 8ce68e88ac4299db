"""
Resilience Exceptions

Exceptions raised by the timeout, retry and circuit breaker layers and by
the resilience executor that composes them.

Author: System Architect
"""

from typing import Any

from flight_search.core.exceptions.base import FlightSearchError


class ResilienceError(FlightSearchError):
    """Base exception for resilience pipeline errors."""
    pass


class OperationTimeoutError(ResilienceError):
    """
    Raised when a single attempt exceeds its time budget.

    The attempt's task is cancelled before this is raised; no partial
    result is ever returned.
    """

    def __init__(self, message: str, timeout_ms: int, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout_ms = timeout_ms
        self.details.setdefault("timeout_ms", timeout_ms)


class CircuitBreakerOpenError(ResilienceError):
    """
    Raised when the circuit breaker is open (fail fast).

    The work was not invoked. The circuit allows a probe once the half-open
    cooldown has elapsed.
    """
    pass


class RetryExhaustedError(ResilienceError):
    """
    Raised when every retry attempt failed.

    Attributes:
        last_error: Failure of the final attempt
        attempts: Number of attempts made
    """

    def __init__(self, message: str, last_error: BaseException, attempts: int, **kwargs):
        super().__init__(message, **kwargs)
        self.last_error = last_error
        self.attempts = attempts
        self.details.setdefault("attempts", attempts)
        self.details.setdefault("last_error", last_error.__class__.__name__)


class ResilienceFailure(ResilienceError):
    """
    Final failure of ``ResilienceExecutor.execute``.

    Carries the underlying error, which layer produced the failure and how
    long the whole execution took.

    Attributes:
        original_error: Error raised by the composed policy
        classification: One of ``FailurePolicy`` values
        elapsed_ms: Total execution time including retries
        operation_key: Operation the failure belongs to
        success: Always False
    """

    def __init__(
        self,
        message: str,
        original_error: BaseException,
        classification: str,
        elapsed_ms: float,
        operation_key: str,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.original_error = original_error
        self.classification = classification
        self.elapsed_ms = elapsed_ms
        self.operation_key = operation_key
        self.success = False
        self.details.update(
            {
                "operation_key": operation_key,
                "classification": classification,
                "elapsed_ms": round(elapsed_ms, 2),
                "original_error": original_error.__class__.__name__,
            }
        )

    @property
    def metrics(self) -> dict[str, Any]:
        return {"total_duration_ms": self.elapsed_ms, "success": self.success}

    def root_cause(self) -> BaseException:
        """
        Unwrap retry exhaustion and nested executor failures down to the
        failure that ended the last attempt.

        Example:
            ResilienceFailure(RetryExhaustedError(last_error=ProviderApiError(503)))
            -> ProviderApiError(503)
        """
        error = self.original_error
        while True:
            if isinstance(error, RetryExhaustedError):
                error = error.last_error
            elif isinstance(error, ResilienceFailure):
                error = error.original_error
            else:
                return error
