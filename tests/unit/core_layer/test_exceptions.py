"""
Unit Tests for the Exception Hierarchy

Tests serialization helpers, inheritance and the provider/resilience
specific attributes.
"""

import pytest

from flight_search.core.exceptions import (
    CacheConnectionError,
    CacheError,
    CircuitBreakerOpenError,
    ConfigurationError,
    FlightSearchError,
    OperationTimeoutError,
    ProviderApiError,
    ResilienceError,
    ResilienceFailure,
    RetryExhaustedError,
    SearchValidationError,
    ValidationError,
)


@pytest.mark.unit
class TestFlightSearchError:
    def test_to_dict(self):
        error = FlightSearchError("boom", request_id="req-1", details={"key": "value"})

        assert error.to_dict() == {
            "error_type": "FlightSearchError",
            "message": "boom",
            "request_id": "req-1",
            "details": {"key": "value"},
        }

    def test_details_are_copied(self):
        details = {"a": 1}
        error = FlightSearchError("boom", details=details)
        error.with_context(b=2)
        assert details == {"a": 1}

    def test_with_context_and_suggestion_chain(self):
        error = ConfigurationError("missing key").with_context(field="AMADEUS_API_KEY").with_suggestion(
            "Set it in .env"
        )

        assert error.details == {"field": "AMADEUS_API_KEY", "suggestion": "Set it in .env"}

    def test_from_exception(self):
        original = ConnectionError("refused")
        error = CacheConnectionError.from_exception(original, host="localhost")

        assert isinstance(error, CacheConnectionError)
        assert error.message == "refused"
        assert error.details["original_error"] == "ConnectionError"
        assert error.details["host"] == "localhost"

    def test_repr_includes_request_id(self):
        assert "request_id='r-9'" in repr(FlightSearchError("x", request_id="r-9"))


@pytest.mark.unit
class TestHierarchy:
    """Every domain error is catchable through the base class."""

    @pytest.mark.parametrize(
        "error_class, parent",
        [
            (CacheConnectionError, CacheError),
            (OperationTimeoutError, ResilienceError),
            (CircuitBreakerOpenError, ResilienceError),
            (RetryExhaustedError, ResilienceError),
            (ResilienceFailure, ResilienceError),
            (SearchValidationError, ValidationError),
            (ProviderApiError, FlightSearchError),
            (ConfigurationError, FlightSearchError),
        ],
    )
    def test_inheritance(self, error_class, parent):
        assert issubclass(error_class, parent)
        assert issubclass(error_class, FlightSearchError)


@pytest.mark.unit
class TestProviderApiError:
    @pytest.mark.parametrize(
        "status, retryable",
        [(400, False), (401, False), (404, False), (429, True), (500, True), (503, True)],
    )
    def test_is_retryable(self, status, retryable):
        assert ProviderApiError("x", status_code=status).is_retryable() is retryable

    def test_error_code_from_first_entry(self):
        error = ProviderApiError(
            "rate limited",
            status_code=429,
            errors=[{"status": 429, "code": 38194}, {"code": 1}],
        )
        assert error.error_code == "38194"
        assert error.has_status(429)
        assert error.details["errors"][0]["code"] == 38194

    def test_error_code_absent(self):
        assert ProviderApiError("x").error_code is None


@pytest.mark.unit
class TestResilienceFailure:
    def test_root_cause_unwraps_retry_and_nested_failures(self):
        provider_error = ProviderApiError("unavailable", status_code=503)
        inner = ResilienceFailure(
            "token failed",
            original_error=RetryExhaustedError("gave up", last_error=provider_error, attempts=2),
            classification="retry",
            elapsed_ms=12.5,
            operation_key="amadeus.token",
        )
        outer = ResilienceFailure(
            "api failed",
            original_error=inner,
            classification="unknown",
            elapsed_ms=20.0,
            operation_key="amadeus.api",
        )

        assert outer.root_cause() is provider_error

    def test_details(self):
        failure = ResilienceFailure(
            "failed",
            original_error=OperationTimeoutError("slow", timeout_ms=100),
            classification="timeout",
            elapsed_ms=101.234,
            operation_key="op",
        )

        assert failure.success is False
        assert failure.details == {
            "operation_key": "op",
            "classification": "timeout",
            "elapsed_ms": 101.23,
            "original_error": "OperationTimeoutError",
        }
