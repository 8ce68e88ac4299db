#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Configures the flight search application: lifespan wiring of the cache,
resilience executor and Amadeus provider, middleware and routes.

Run locally:
    uvicorn flight_search.application.app:app --port 3000

Author: System Architect
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from flight_search.application.api.middleware import setup_middleware
from flight_search.application.api.routes import cache_debug_router, health_router, search_router
from flight_search.core.config.constants import Stage
from flight_search.core.config.settings import get_settings
from flight_search.core.logging.logger import get_logger, setup_logging
from flight_search.core.resilience import ResilienceExecutor
from flight_search.infrastructure.cache import CacheStore, close_redis, init_redis
from flight_search.providers.amadeus import (
    AmadeusClient,
    AmadeusFlightProvider,
    AmadeusTokenManager,
    create_http_client,
)
from flight_search.search.search_service import SearchService

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    Startup order follows the dependency graph:
    Redis -> CacheStore -> ResilienceExecutor -> HTTP client -> token manager
    -> Amadeus client -> provider -> SearchService
    """
    settings = get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Flight Search Service",
        stage=Stage.INITIALIZATION.value,
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    http_client = None
    cache_store = None
    try:
        redis_client = await init_redis()
        cache_store = CacheStore(redis_client)
        logger.info("Cache store ready", stage=Stage.INITIALIZATION.value)

        executor = ResilienceExecutor(settings.resilience)

        http_client = create_http_client(settings.amadeus)
        token_manager = AmadeusTokenManager(cache_store, executor, http_client, settings.amadeus)
        amadeus_client = AmadeusClient(token_manager, executor, http_client)
        provider = AmadeusFlightProvider(amadeus_client)
        logger.info(
            "Flight provider ready",
            stage=Stage.INITIALIZATION.value,
            provider=provider.provider_name,
            base_url=settings.amadeus.AMADEUS_BASE_URL,
        )

        app.state.cache_store = cache_store
        app.state.resilience_executor = executor
        app.state.search_service = SearchService(provider, cache_store)

        logger.info("Application startup complete", stage=Stage.INITIALIZATION.value)

        yield

    finally:
        logger.info("Shutting down application", stage=Stage.CLEANUP.value)

        if cache_store is not None:
            await cache_store.flush_pending_writes()
        if http_client is not None:
            await http_client.aclose()
        await close_redis()

        logger.info("Application shutdown complete", stage=Stage.CLEANUP.value)


# ============================================================================
# Application Factory
# ============================================================================


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    All routers are mounted under API_BASE_PATH (default ``/api/v1``).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Flight offer search with a resilient provider call path and Redis caching",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    setup_middleware(app)

    base_path = settings.API_BASE_PATH
    app.include_router(health_router, prefix=base_path)
    app.include_router(search_router, prefix=base_path)
    app.include_router(cache_debug_router, prefix=base_path)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": f"{base_path}/health",
        }

    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "flight_search.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
