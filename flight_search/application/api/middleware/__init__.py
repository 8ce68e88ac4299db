"""
Middleware Package

Starlette runs middleware in REVERSE order of registration (last added runs
first). Registration order here:

1. Error handling - innermost, turns exceptions into JSON responses
2. CORS - headers on every response, errors included
3. Request context - outermost, sets the request ID before anything logs
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flight_search.core.config.constants import HEADER_REQUEST_ID
from flight_search.core.config.settings import get_settings
from flight_search.core.logging.logger import get_logger

from .error_handler import add_error_handling_middleware
from .request_context import add_request_context_middleware

logger = get_logger(__name__)


def setup_middleware(app: FastAPI) -> None:
    """Register all middleware components in the correct order."""
    settings = get_settings()

    add_error_handling_middleware(
        app, include_traceback=(settings.app.ENVIRONMENT == "development")
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=[HEADER_REQUEST_ID],
    )

    add_request_context_middleware(app)

    logger.info("All middleware components registered")


__all__ = [
    "setup_middleware",
    "add_error_handling_middleware",
    "add_request_context_middleware",
]
