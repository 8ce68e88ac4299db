"""
Unit Tests for the InMemoryCache Backend
"""

import pytest

from flight_search.core.exceptions import CacheConnectionError, CacheKeyError
from flight_search.core.interfaces.cache import CacheBackend, InMemoryCache


@pytest.mark.unit
class TestInMemoryCache:
    @pytest.mark.asyncio
    async def test_implements_protocol(self, memory_cache):
        assert isinstance(memory_cache, CacheBackend)

    @pytest.mark.asyncio
    async def test_set_get_delete(self, memory_cache):
        await memory_cache.set("k", "v", 10)
        assert await memory_cache.get("k") == "v"
        assert await memory_cache.delete("k", "missing") == 1
        assert await memory_cache.get("k") is None

    @pytest.mark.asyncio
    async def test_requires_positive_ttl(self, memory_cache):
        with pytest.raises(CacheKeyError):
            await memory_cache.set("k", "v", 0)

    @pytest.mark.asyncio
    async def test_lazy_expiry(self, memory_cache, clock):
        await memory_cache.set("k", "v", 10)
        clock.advance_ms(9_999)
        assert await memory_cache.get("k") == "v"
        clock.advance_ms(1)
        assert await memory_cache.get("k") is None
        assert await memory_cache.ttl("k") == -2

    @pytest.mark.asyncio
    async def test_scan_matches_glob(self, memory_cache):
        for key in ("search:flights:JFK:1", "search:flights:LAX:1", "auth:amadeus:token"):
            await memory_cache.set(key, "v", 10)

        keys = [key async for key in memory_cache.scan_iter("search:*")]
        assert sorted(keys) == ["search:flights:JFK:1", "search:flights:LAX:1"]

    @pytest.mark.asyncio
    async def test_fail_with_simulates_outage(self, memory_cache):
        memory_cache.fail_with = CacheConnectionError("down")

        with pytest.raises(CacheConnectionError):
            await memory_cache.get("k")
        with pytest.raises(CacheConnectionError):
            await memory_cache.ping()

    @pytest.mark.asyncio
    async def test_health(self):
        cache = InMemoryCache()
        assert (await cache.health_check())["status"] == "unhealthy"
        await cache.connect()
        assert (await cache.health_check())["status"] == "healthy"
        assert await cache.ping() is True
