"""
Flight Provider Exceptions

All exceptions related to flight data provider operations (Amadeus).

Author: System Architect
"""

from typing import Any

from flight_search.core.exceptions.base import FlightSearchError


class ProviderError(FlightSearchError):
    """Base exception for flight provider errors."""
    pass


class ProviderApiError(ProviderError):
    """
    Raised when the provider API returns an error or an unusable payload.

    Attributes:
        status_code: HTTP status returned by the provider (500 for
            malformed payloads, 503 for transport failures)
        errors: Provider error entries, each with optional
            ``status``, ``code``, ``title`` and ``detail``

    Example:
        raise ProviderApiError(
            "Amadeus API request failed",
            status_code=429,
            errors=[{"status": 429, "code": 38194, "title": "Too many requests"}],
        )
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        errors: list[dict[str, Any]] | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.errors = list(errors or [])
        self.details.setdefault("status_code", status_code)
        if self.errors:
            self.details.setdefault("errors", self.errors)

    def is_retryable(self) -> bool:
        """Server errors and rate limiting are worth retrying."""
        return self.status_code >= 500 or self.status_code == 429

    def has_status(self, status_code: int) -> bool:
        return self.status_code == status_code

    @property
    def error_code(self) -> str | None:
        """Code of the first provider error entry, if any."""
        if not self.errors:
            return None
        code = self.errors[0].get("code")
        return str(code) if code is not None else None
