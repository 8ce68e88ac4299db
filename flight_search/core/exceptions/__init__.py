"""
Exception Module

Structured exception hierarchy for the flight search service.
Exceptions are organized by theme.

Module Structure:
-----------------
- **base.py**: FlightSearchError base class + ConfigurationError
- **cache.py**: Cache-related exceptions (Redis)
- **resilience.py**: Timeout, retry, circuit breaker and executor failures
- **provider.py**: Flight provider exceptions
- **validation.py**: Request validation exceptions

Usage:
------
```python
from flight_search.core.exceptions import ResilienceFailure, ProviderApiError
```

Author: System Architect
"""

from flight_search.core.exceptions.base import ConfigurationError, FlightSearchError
from flight_search.core.exceptions.cache import CacheConnectionError, CacheError, CacheKeyError
from flight_search.core.exceptions.provider import ProviderApiError, ProviderError
from flight_search.core.exceptions.resilience import (
    CircuitBreakerOpenError,
    OperationTimeoutError,
    ResilienceError,
    ResilienceFailure,
    RetryExhaustedError,
)
from flight_search.core.exceptions.validation import SearchValidationError, ValidationError

__all__ = [
    # Base
    "FlightSearchError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    # Resilience
    "ResilienceError",
    "OperationTimeoutError",
    "CircuitBreakerOpenError",
    "RetryExhaustedError",
    "ResilienceFailure",
    # Provider
    "ProviderError",
    "ProviderApiError",
    # Validation
    "ValidationError",
    "SearchValidationError",
]
