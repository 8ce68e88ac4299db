"""
Cache Debug Routes

Manual inspection and invalidation of the cache store. All endpoints are GET
so they can be driven from a browser:

    /debug/cache/set?key=foo&value=bar
    /debug/cache/get?key=foo
    /debug/cache/wrap?key=foo
    /debug/cache/stats
    /debug/cache/del?key=foo
    /debug/cache/del-search?origin=JFK&destination=LAX&departureDate=2025-12-25
    /debug/cache/del-pattern?pattern=search:flights:JFK:*
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Query

from flight_search.application.api.dependencies import CacheStoreDep
from flight_search.application.api.routes.search import SearchRequestDep
from flight_search.search.search_service import build_cache_key

router = APIRouter(prefix="/debug/cache", tags=["Cache Debug"])

DEBUG_TTL_SECONDS = 60


@router.get("/set")
async def set_value(cache: CacheStoreDep, key: str = Query(..., min_length=1), value: str = Query(...)):
    written = await cache.set(key, value, DEBUG_TTL_SECONDS)
    return {"ok": written, "key": key, "value": value, "ttl_seconds": DEBUG_TTL_SECONDS}


@router.get("/get")
async def get_value(cache: CacheStoreDep, key: str = Query(..., min_length=1)):
    return {"key": key, "value": await cache.get(key)}


@router.get("/wrap")
async def wrap_value(cache: CacheStoreDep, key: str = Query(..., min_length=1)):
    """Cache-aside demo: the first call generates a timestamp, later calls return it."""

    async def produce() -> dict:
        return {"generatedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")}

    result = await cache.wrap(key, DEBUG_TTL_SECONDS, produce)
    return {"key": key, "result": result}


@router.get("/stats")
async def stats(cache: CacheStoreDep):
    return cache.get_stats()


@router.get("/del")
async def delete_key(cache: CacheStoreDep, key: str = Query(..., min_length=1)):
    removed = await cache.delete(key)
    return {"ok": True, "key": key, "removed": removed}


@router.get("/del-search")
async def delete_search(search: SearchRequestDep, cache: CacheStoreDep):
    """Delete the cached result of one search, given the same parameters as the search."""
    key = build_cache_key(search)
    removed = await cache.delete(key)
    return {"ok": True, "key": key, "removed": removed}


@router.get("/del-pattern")
async def delete_pattern(cache: CacheStoreDep, pattern: str = Query(..., min_length=1)):
    deleted = await cache.delete_by_pattern(pattern)
    return {"ok": True, "pattern": pattern, "keysDeleted": deleted}
