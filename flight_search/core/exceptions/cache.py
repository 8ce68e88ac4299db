"""
Cache-Related Exceptions

Raised by the Redis client. The cache store absorbs them so a cache outage
never fails a search.

Author: System Architect
"""

from flight_search.core.exceptions.base import FlightSearchError


class CacheError(FlightSearchError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to cache (Redis).

    Common causes:
    - Redis server is down
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache key operation fails.

    Common causes:
    - Operation timeout
    - Wrong value type stored under the key
    - Memory limit exceeded
    """
    pass
