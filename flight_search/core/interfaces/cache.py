"""
Cache Backend Protocol

This module defines the protocol the cache store depends on, so the store
can run against Redis in production and an in-memory dict in tests.

Architectural Decision: Protocol-based abstraction
- Structural typing, no inheritance required
- Facilitates testing with the in-memory implementation
- Runtime validation with @runtime_checkable

Author: System Architect
"""

import fnmatch
import time
from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol, runtime_checkable

from flight_search.core.exceptions.cache import CacheKeyError


@runtime_checkable
class CacheBackend(Protocol):
    """
    Protocol defining the interface for cache backend implementations.

    Implementations:
    - RedisClient: Production Redis-backed cache
    - InMemoryCache: Testing/development in-memory cache

    Every write carries a TTL. Keys passed in and yielded by ``scan_iter``
    are logical keys; any namespace prefix is the backend's concern.
    """

    async def connect(self) -> None:
        """
        Establish connection to the cache backend.

        Raises:
            CacheConnectionError: If connection fails
        """
        ...

    async def disconnect(self) -> None:
        """Close connection to the cache backend."""
        ...

    async def ping(self) -> bool:
        """Return True if the backend answers."""
        ...

    async def get(self, key: str) -> str | None:
        """
        Get value from cache.

        Returns:
            Value or None if not found

        Raises:
            CacheKeyError: If operation fails
        """
        ...

    async def set(self, key: str, value: str, ttl: int) -> bool:
        """
        Set value in cache with an expiry in seconds.

        Raises:
            CacheKeyError: If operation fails
        """
        ...

    async def delete(self, *keys: str) -> int:
        """
        Delete keys from cache.

        Returns:
            Number of keys deleted

        Raises:
            CacheKeyError: If operation fails
        """
        ...

    def scan_iter(self, match: str, count: int = 100) -> AsyncIterator[str]:
        """
        Iterate over keys matching a glob pattern with cursor-based scanning.

        Args:
            match: Glob pattern (``*``, ``?``, ``[...]``)
            count: Batch size hint per scan round-trip
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        """Perform health check and return status details."""
        ...


class InMemoryCache:
    """
    Simple in-memory cache implementation for testing.

    Implements the CacheBackend protocol without external dependencies.
    Expiry is evaluated lazily against an injectable monotonic clock.

    Setting ``fail_with`` to an exception instance makes every operation
    raise it, which lets tests exercise fail-open behavior.

    Note: This is NOT distributed. Use only for tests and local development.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: dict[str, str] = {}
        self._expires_at: dict[str, float] = {}
        self._clock = clock
        self._connected = False
        self.fail_with: Exception | None = None

    def _check_failure(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _purge_if_expired(self, key: str) -> None:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self._store.pop(key, None)
            self._expires_at.pop(key, None)

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False
        self._store.clear()
        self._expires_at.clear()

    async def ping(self) -> bool:
        self._check_failure()
        return self._connected

    async def get(self, key: str) -> str | None:
        self._check_failure()
        self._purge_if_expired(key)
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl: int) -> bool:
        self._check_failure()
        if ttl <= 0:
            raise CacheKeyError("TTL must be positive", details={"key": key, "ttl": ttl})
        self._store[key] = value
        self._expires_at[key] = self._clock() + ttl
        return True

    async def delete(self, *keys: str) -> int:
        self._check_failure()
        count = 0
        for key in keys:
            self._purge_if_expired(key)
            if key in self._store:
                del self._store[key]
                self._expires_at.pop(key, None)
                count += 1
        return count

    async def scan_iter(self, match: str, count: int = 100) -> AsyncIterator[str]:
        self._check_failure()
        for key in list(self._store):
            self._purge_if_expired(key)
            if key in self._store and fnmatch.fnmatchcase(key, match):
                yield key

    async def ttl(self, key: str) -> int:
        """Remaining TTL in whole seconds, -2 if the key doesn't exist."""
        self._purge_if_expired(key)
        if key not in self._store:
            return -2
        return int(self._expires_at[key] - self._clock())

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy" if self._connected else "unhealthy",
            "connected": self._connected,
            "keys_count": len(self._store),
        }
