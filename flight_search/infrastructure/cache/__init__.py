"""
Cache Module

Redis-backed cache-aside store with fail-open semantics.
"""

from .cache_store import CacheStore
from .redis_client import RedisClient, close_redis, get_redis_client, init_redis

__all__ = [
    "CacheStore",
    "RedisClient",
    "get_redis_client",
    "init_redis",
    "close_redis",
]
