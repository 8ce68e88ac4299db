"""
Health Check Routes

- ``GET /health``        overall status: cache backend, cache counters, circuits
- ``GET /health/live``   liveness, no dependency checks
- ``GET /health/ready``  readiness, 503 while the cache backend is unreachable

The service keeps answering searches while the cache is down (the cache is
fail-open), so ``/health`` reports ``degraded`` rather than failing.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from flight_search.application.api.dependencies import CacheStoreDep, ExecutorDep
from flight_search.core.config.constants import CircuitState

router = APIRouter(prefix="/health", tags=["Health"])


class HealthResponse(BaseModel):
    status: str  # "healthy" or "degraded"
    timestamp: str
    components: dict | None = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("", response_model=HealthResponse)
async def health_check(cache: CacheStoreDep, executor: ExecutorDep):
    cache_health = await cache.health_check()
    circuits = executor.get_circuit_states()

    cache_ok = cache_health.get("status") == "healthy"
    circuits_ok = all(c["state"] != CircuitState.OPEN.value for c in circuits.values())

    return HealthResponse(
        status="healthy" if cache_ok and circuits_ok else "degraded",
        timestamp=_now(),
        components={"cache": cache_health, "circuit_breakers": circuits},
    )


@router.get("/live")
async def liveness_probe():
    return {"status": "alive", "timestamp": _now()}


@router.get("/ready")
async def readiness_probe(cache: CacheStoreDep):
    cache_health = await cache.health_check()
    result = {
        "status": "ready" if cache_health.get("status") == "healthy" else "not_ready",
        "timestamp": _now(),
        "components": {"cache": cache_health},
    }
    if result["status"] != "ready":
        raise HTTPException(status_code=503, detail=result)
    return result
