#!/usr/bin/env python3
"""
Cache Store - Cache-Aside Layer over a CacheBackend

Architecture:
    CacheStore (Public API)
        ├── CacheBackend (RedisClient in production, InMemoryCache in tests)
        └── CacheObserver (hit/miss counters and logging)

Behavior:
    - Values are serialized with orjson; pydantic models via model_dump(mode="json")
    - Every write carries a TTL; a non-positive TTL is rejected and nothing is written
    - Backend failures never reach callers: reads degrade to a miss,
      writes and deletes are logged and dropped
    - wrap() returns the producer's result without waiting for the write-back

Author: System Architect
"""

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import aclosing
from typing import Any, TypeVar

import orjson
from pydantic import BaseModel

from flight_search.core.config.constants import (
    CACHE_KEY_SEPARATOR,
    DELETE_BATCH_SIZE,
    MAX_PATTERN_DELETE_KEYS,
    SCAN_BATCH_SIZE,
    Stage,
)
from flight_search.core.interfaces.cache import CacheBackend
from flight_search.core.logging.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


def _serialize_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def serialize(value: Any) -> str:
    return orjson.dumps(value, default=_serialize_default).decode("utf-8")


def deserialize(raw: str) -> Any:
    """Parse stored JSON; values that are not JSON come back as the raw string."""
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        return raw


# =============================================================================
# OBSERVER
# =============================================================================


class CacheObserver:
    """
    Tracks cache hit/miss counters and logs operations.

    Counters only grow for the lifetime of the process.
    """

    def __init__(self):
        self._hits = 0
        self._misses = 0

    def record_hit(self, key: str) -> None:
        self._hits += 1
        logger.debug("Cache hit", stage=Stage.CACHE_LOOKUP.value, key=key)

    def record_miss(self, key: str) -> None:
        self._misses += 1
        logger.debug("Cache miss", stage=Stage.CACHE_LOOKUP.value, key=key)

    def get_stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total > 0 else 0.0,
        }


# =============================================================================
# PUBLIC API
# =============================================================================


class CacheStore:
    """
    Fail-open cache-aside store.

    Usage:
        store = CacheStore(redis_client)
        key = store.compose_key("search", "flights", "JFK", "LAX")
        offers = await store.wrap(key, 3600, lambda: provider.search_flights(request))
    """

    def __init__(self, backend: CacheBackend):
        self._backend = backend
        self._observer = CacheObserver()
        # Latest scheduled write-back per key; older writes are chained behind it
        self._pending_writes: dict[str, asyncio.Task] = {}

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    @staticmethod
    def compose_key(*parts: Any) -> str:
        """Join the truthy parts with ':'. ``compose_key("a", "", None, "b") == "a:b"``."""
        return CACHE_KEY_SEPARATOR.join(str(part) for part in parts if part)

    async def get(self, key: str) -> Any | None:
        """
        STAGE-2.0: Cache lookup

        Returns:
            Deserialized value, or None on miss or backend failure
        """
        await self._await_pending_write(key)
        try:
            raw = await self._backend.get(key)
        except Exception as e:
            logger.warning(
                "Cache read failed, treating as miss",
                stage=Stage.CACHE_LOOKUP.value,
                key=key,
                error=str(e),
                exc_info=True,
            )
            self._observer.record_miss(key)
            return None

        if raw is None:
            self._observer.record_miss(key)
            return None

        self._observer.record_hit(key)
        return deserialize(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """
        STAGE-2.1: Cache write with mandatory expiry

        Returns:
            True if the value was written
        """
        await self._await_pending_write(key)
        return await self._write(key, value, ttl_seconds)

    async def _write(self, key: str, value: Any, ttl_seconds: int) -> bool:
        if ttl_seconds <= 0:
            logger.error(
                "Refusing cache write without a positive TTL",
                stage=Stage.CACHE_WRITE.value,
                key=key,
                ttl_seconds=ttl_seconds,
            )
            return False

        try:
            payload = serialize(value)
        except TypeError as e:
            logger.error(
                "Cache value is not serializable",
                stage=Stage.CACHE_WRITE.value,
                key=key,
                error=str(e),
            )
            return False

        try:
            await self._backend.set(key, payload, ttl_seconds)
        except Exception as e:
            logger.warning(
                "Cache write failed",
                stage=Stage.CACHE_WRITE.value,
                key=key,
                error=str(e),
                exc_info=True,
            )
            return False

        logger.debug(
            "Cache set", stage=Stage.CACHE_WRITE.value, key=key, ttl_seconds=ttl_seconds
        )
        return True

    async def delete(self, key: str) -> bool:
        """
        STAGE-2.2: Single key invalidation

        Returns:
            True if a key was removed
        """
        await self._await_pending_write(key)
        try:
            removed = await self._backend.delete(key)
        except Exception as e:
            logger.warning(
                "Cache delete failed",
                stage=Stage.CACHE_INVALIDATION.value,
                key=key,
                error=str(e),
                exc_info=True,
            )
            return False
        return removed > 0

    async def delete_by_pattern(self, pattern: str) -> int:
        """
        STAGE-2.2: Pattern invalidation

        Collects matching keys with cursor-based SCAN, then deletes them in
        batches. At most MAX_PATTERN_DELETE_KEYS keys are collected per call;
        matches beyond the cap are left for a later call.

        Args:
            pattern: Glob pattern, e.g. ``search:flights:JFK:*``

        Returns:
            Number of keys removed
        """
        keys: list[str] = []
        truncated = False
        try:
            async with aclosing(
                self._backend.scan_iter(match=pattern, count=SCAN_BATCH_SIZE)
            ) as matches:
                async for key in matches:
                    if len(keys) >= MAX_PATTERN_DELETE_KEYS:
                        truncated = True
                        break
                    keys.append(key)
        except Exception as e:
            logger.warning(
                "Cache scan failed",
                stage=Stage.CACHE_INVALIDATION.value,
                pattern=pattern,
                error=str(e),
                exc_info=True,
            )
            return 0

        if truncated:
            logger.warning(
                "Pattern delete hit the key cap",
                stage=Stage.CACHE_INVALIDATION.value,
                pattern=pattern,
                max_keys=MAX_PATTERN_DELETE_KEYS,
            )

        removed = 0
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            try:
                removed += await self._backend.delete(*batch)
            except Exception as e:
                logger.warning(
                    "Cache batch delete failed",
                    stage=Stage.CACHE_INVALIDATION.value,
                    pattern=pattern,
                    batch_size=len(batch),
                    error=str(e),
                    exc_info=True,
                )
                break

        logger.info(
            "Cache keys invalidated by pattern",
            stage=Stage.CACHE_INVALIDATION.value,
            pattern=pattern,
            matched=len(keys),
            removed=removed,
        )
        return removed

    async def wrap(self, key: str, ttl_seconds: int, producer: Callable[[], Awaitable[T]]) -> T | Any:
        """
        Cache-aside read.

        On a hit returns the cached value. On a miss awaits ``producer``,
        schedules the write-back in the background and returns the produced
        value. Producer errors propagate and nothing is cached.

        Reads, writes and deletes of a key first wait for that key's pending
        write-back, so a second call sees the value the first one produced.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        value = await producer()
        self._schedule_write(key, value, ttl_seconds)
        return value

    def _schedule_write(self, key: str, value: Any, ttl_seconds: int) -> None:
        previous = self._pending_writes.get(key)
        task = asyncio.create_task(self._write_back(key, value, ttl_seconds, previous))
        self._pending_writes[key] = task

        def forget(done: asyncio.Task) -> None:
            if self._pending_writes.get(key) is done:
                del self._pending_writes[key]

        task.add_done_callback(forget)

    async def _await_pending_write(self, key: str) -> None:
        task = self._pending_writes.get(key)
        if task is not None and not task.done():
            # Shielded so a cancelled reader does not cancel the write
            await asyncio.shield(task)

    async def _write_back(
        self, key: str, value: Any, ttl_seconds: int, previous: asyncio.Task | None = None
    ) -> None:
        if previous is not None and not previous.done():
            await asyncio.shield(previous)
        try:
            await self._write(key, value, ttl_seconds)
        except Exception:
            logger.error(
                "Background cache write failed",
                stage=Stage.CACHE_WRITE.value,
                key=key,
                exc_info=True,
            )

    async def flush_pending_writes(self) -> None:
        """Wait for every scheduled write-back to finish."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes.values()), return_exceptions=True)

    def get_stats(self) -> dict[str, Any]:
        return self._observer.get_stats()

    async def health_check(self) -> dict[str, Any]:
        try:
            health = await self._backend.health_check()
        except Exception as e:
            health = {"status": "unhealthy", "error": str(e)}
        return {**health, **self.get_stats()}
