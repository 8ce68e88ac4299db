from flight_search.application.api.routes.cache_debug import router as cache_debug_router
from flight_search.application.api.routes.health import router as health_router
from flight_search.application.api.routes.search import router as search_router

__all__ = ["cache_debug_router", "health_router", "search_router"]
