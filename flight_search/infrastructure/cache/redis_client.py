"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API, implements CacheBackend)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution, key namespacing, error handling)
        └── HealthMonitor (Health checks and pool metrics)

Every key is stored under the configured prefix
(``flightsearch:<environment>:`` by default). Callers always see logical
keys: the prefix is added on the way in and stripped from SCAN results.

Author: System Architect
"""

import time
from collections.abc import AsyncIterator
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from flight_search.core.config.constants import SCAN_BATCH_SIZE
from flight_search.core.config.settings import Settings, get_settings
from flight_search.core.exceptions import CacheConnectionError, CacheKeyError
from flight_search.core.logging.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Pool Configuration (from settings):
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeout: REDIS_SOCKET_TIMEOUT
    - Health check interval: REDIS_HEALTH_CHECK_INTERVAL
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Raises:
            CacheConnectionError: If connection fails
        """
        if self._is_connected and self._client:
            return self._client

        redis_settings = self._settings.redis
        try:
            self._pool = ConnectionPool(
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                db=redis_settings.REDIS_DB,
                password=redis_settings.REDIS_PASSWORD,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                retry_on_timeout=True,
                health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            await self._client.ping()
            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage="REDIS.2",
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                key_prefix=redis_settings.REDIS_KEY_PREFIX,
            )
            return self._client

        except (ConnectionError, TimeoutError) as e:
            logger.error("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={"host": redis_settings.REDIS_HOST, "port": redis_settings.REDIS_PORT},
            ) from e

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._is_connected = False
        logger.info("Redis disconnected", stage="REDIS.3")

    async def ping(self) -> bool:
        try:
            if self._client and self._is_connected:
                await self._client.ping()
                return True
        except (ConnectionError, TimeoutError):
            pass
        return False

    def get_client(self) -> redis.Redis | None:
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        return self._pool

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Error Handling Strategy:
    - Catch RedisError exceptions
    - Log error with context (stage, key)
    - Raise CacheKeyError chained from the Redis error
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self._redis = redis_client
        self._prefix = key_prefix

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _logical_key(self, full_key: str) -> str:
        if self._prefix and full_key.startswith(self._prefix):
            return full_key[len(self._prefix):]
        return full_key

    async def get(self, key: str) -> str | None:
        """
        STAGE-REDIS.GET: Redis GET operation
        """
        try:
            return await self._redis.get(self._full_key(key))
        except RedisError as e:
            logger.error("Redis GET failed", stage="REDIS.GET", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis GET failed: {e}", details={"key": key}) from e

    async def set(self, key: str, value: str, ttl: int) -> bool:
        """
        STAGE-REDIS.SET: Redis SET with EX expiry
        """
        try:
            result = await self._redis.set(self._full_key(key), value, ex=ttl)
            return bool(result)
        except RedisError as e:
            logger.error("Redis SET failed", stage="REDIS.SET", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis SET failed: {e}", details={"key": key}) from e

    async def delete(self, *keys: str) -> int:
        """
        STAGE-REDIS.DEL: Redis DELETE operation
        """
        if not keys:
            return 0
        try:
            return await self._redis.delete(*(self._full_key(key) for key in keys))
        except RedisError as e:
            logger.error("Redis DELETE failed", stage="REDIS.DEL", keys=len(keys), error=str(e))
            raise CacheKeyError(
                message=f"Redis DELETE failed: {e}", details={"keys": len(keys)}
            ) from e

    async def scan_iter(self, match: str, count: int = SCAN_BATCH_SIZE) -> AsyncIterator[str]:
        """
        STAGE-REDIS.SCAN: Cursor-based key iteration (never KEYS)
        """
        try:
            async for full_key in self._redis.scan_iter(match=self._full_key(match), count=count):
                yield self._logical_key(full_key)
        except RedisError as e:
            logger.error("Redis SCAN failed", stage="REDIS.SCAN", match=match, error=str(e))
            raise CacheKeyError(message=f"Redis SCAN failed: {e}", details={"match": match}) from e


# =============================================================================
# LAYER 3: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """Health checks and connection pool metrics."""

    def __init__(self, conn_mgr: ConnectionManager, settings: Settings):
        self._conn_mgr = conn_mgr
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        STAGE-REDIS.HEALTH: Redis health check

        Returns:
            Dict with health status, ping latency and pool utilization
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "pool_size": 0,
            "pool_utilization_pct": 0,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
            return health

        pool = self._conn_mgr.get_pool()
        if pool and hasattr(pool, "_available_connections"):
            health["pool_size"] = pool.max_connections
            in_use = len(getattr(pool, "_in_use_connections", ()))
            health["pool_utilization_pct"] = round(100.0 * in_use / pool.max_connections, 1)

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class RedisClient:
    """
    Async Redis client with connection pooling and health checks.

    Implements the CacheBackend protocol.

    Usage:
        client = RedisClient()
        await client.connect()
        await client.set("search:flights:JFK:LAX", payload, ttl=3600)
        value = await client.get("search:flights:JFK:LAX")
    """

    def __init__(self, settings: Settings | None = None):
        """
        STAGE-REDIS.1: Client initialization
        """
        self._settings = settings or get_settings()
        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

        logger.info(
            "Redis client initialized",
            stage="REDIS.1",
            host=self._settings.redis.REDIS_HOST,
            port=self._settings.redis.REDIS_PORT,
        )

    @property
    def key_prefix(self) -> str:
        return self._settings.redis.REDIS_KEY_PREFIX

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheConnectionError("Redis client is not connected")
        return self._executor

    async def connect(self) -> None:
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client, key_prefix=self.key_prefix)

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        return await self._conn_mgr.ping()

    async def get(self, key: str) -> str | None:
        return await self._require_executor().get(key)

    async def set(self, key: str, value: str, ttl: int) -> bool:
        return await self._require_executor().set(key, value, ttl)

    async def delete(self, *keys: str) -> int:
        return await self._require_executor().delete(*keys)

    async def scan_iter(self, match: str, count: int = SCAN_BATCH_SIZE) -> AsyncIterator[str]:
        async for key in self._require_executor().scan_iter(match, count):
            yield key

    async def health_check(self) -> dict[str, Any]:
        return await self._health_monitor.health_check()


# =============================================================================
# GLOBAL INSTANCE (SINGLETON PATTERN)
# =============================================================================

_redis_client: RedisClient | None = None


def get_redis_client() -> RedisClient:
    """Get the global Redis client instance (singleton)."""
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client


async def init_redis() -> RedisClient:
    """Initialize and connect the global Redis client."""
    client = get_redis_client()
    await client.connect()
    return client


async def close_redis() -> None:
    """Close the global Redis client."""
    global _redis_client
    if _redis_client:
        await _redis_client.disconnect()
        _redis_client = None
