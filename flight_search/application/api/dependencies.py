"""
FastAPI Dependency Injection

Route handlers receive the application singletons through ``Depends``
instead of importing globals. The singletons are created once in the
lifespan handler (``flight_search.application.app``) and stored on
``app.state``; the providers below only read them back.

Tests replace any of them with ``app.dependency_overrides``:

    app.dependency_overrides[get_search_service] = lambda: fake_service
"""

from typing import Annotated

from fastapi import Depends, Request

from flight_search.core.config.settings import Settings, get_settings
from flight_search.core.resilience.executor import ResilienceExecutor
from flight_search.infrastructure.cache.cache_store import CacheStore
from flight_search.search.search_service import SearchService


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"'{name}' is not initialized; the application lifespan did not run")
    return value


def get_search_service(request: Request) -> SearchService:
    return _from_state(request, "search_service")


def get_cache_store(request: Request) -> CacheStore:
    return _from_state(request, "cache_store")


def get_resilience_executor(request: Request) -> ResilienceExecutor:
    return _from_state(request, "resilience_executor")


# ============================================================================
# TYPE ALIASES
# ============================================================================

SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]
CacheStoreDep = Annotated[CacheStore, Depends(get_cache_store)]
ExecutorDep = Annotated[ResilienceExecutor, Depends(get_resilience_executor)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
