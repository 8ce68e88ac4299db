"""
Amadeus error translation.

Turns HTTP responses and transport failures into ``ProviderApiError`` and
decides which failures are worth retrying.
"""

from typing import Any

import httpx

from flight_search.core.exceptions import (
    CircuitBreakerOpenError,
    ProviderApiError,
    ResilienceFailure,
    RetryExhaustedError,
)

# Failures a retry cannot fix: malformed request, bad credentials
NON_RETRYABLE_STATUSES = frozenset({400, 401})


def error_from_response(response: httpx.Response) -> ProviderApiError:
    """
    Build an error from a non-2xx provider response.

    Amadeus answers errors with ``{"errors": [{"status", "code", "title",
    "detail"}]}``. The first entry's status wins over the HTTP status, as
    the provider documents.
    """
    errors: list[dict[str, Any]] = []
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("errors"), list):
        errors = [entry for entry in body["errors"] if isinstance(entry, dict)]

    status_code = response.status_code
    if errors:
        first = errors[0]
        try:
            status_code = int(first.get("status") or response.status_code)
        except (TypeError, ValueError):
            status_code = response.status_code
        message = f"{first.get('title', 'Amadeus API error')}: {first.get('detail', '')}".rstrip(": ")
    else:
        errors = [
            {
                "status": response.status_code,
                "code": 0,
                "title": "HTTP Error",
                "detail": response.reason_phrase,
            }
        ]
        message = f"Amadeus API returned HTTP {response.status_code}"

    return ProviderApiError(message, status_code=status_code, errors=errors)


def error_from_transport(exc: httpx.HTTPError) -> ProviderApiError:
    status_code = 504 if isinstance(exc, httpx.TimeoutException) else 503
    return ProviderApiError(
        f"Network error calling Amadeus: {exc}",
        status_code=status_code,
        errors=[
            {
                "status": status_code,
                "code": 0,
                "title": "Network Error",
                "detail": str(exc) or exc.__class__.__name__,
            }
        ],
    )


def invalid_payload(detail: str, **context) -> ProviderApiError:
    return ProviderApiError(
        f"Invalid Response: {detail}",
        status_code=500,
        errors=[{"status": 500, "code": 0, "title": "Invalid Response", "detail": detail}],
    ).with_context(**context)


def is_retryable_failure(error: BaseException) -> bool:
    """
    Retry predicate for Amadeus calls.

    - 400 and 401 are never retried (401 is handled by a token refresh)
    - An open circuit is not retried
    - Everything else, including 429, 5xx and timeouts, is retried
    """
    if isinstance(error, ResilienceFailure):
        error = error.root_cause()
    while isinstance(error, RetryExhaustedError):
        error = error.last_error
    if isinstance(error, CircuitBreakerOpenError):
        return False
    if isinstance(error, ProviderApiError):
        return error.status_code not in NON_RETRYABLE_STATUSES
    return True
