"""
Validation Exceptions

All exceptions related to request validation.

Author: System Architect
"""

from flight_search.core.exceptions.base import FlightSearchError


class ValidationError(FlightSearchError):
    """
    Raised when request validation fails.

    This is the base class for all validation-related errors.
    """
    pass


class SearchValidationError(ValidationError):
    """
    Raised when search parameters are logically invalid.

    Common causes:
    - Unparseable date
    - Departure date in the past
    - Return date before departure date
    """
    pass
