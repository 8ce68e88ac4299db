"""
Request Context Middleware

Gives every request a correlation ID and logs its outcome.

- The ID comes from the ``X-Request-ID`` header or a fresh UUID4
- It is stored in the logging context var, so every log line emitted while
  handling the request carries ``request_id``
- It is echoed back on the response
- One line is logged per request with method, path, status and duration;
  sensitive headers are redacted
"""

import time
import uuid
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from flight_search.core.config.constants import HEADER_REQUEST_ID
from flight_search.core.logging.logger import clear_request_id, get_logger, set_request_id

logger = get_logger(__name__)

SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "proxy-authorization",
}


def sanitize_headers(headers: dict) -> dict:
    return {
        key: "[REDACTED]" if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)
        start_time = time.perf_counter()

        logger.debug(
            f"Incoming request: {request.method} {request.url.path}",
            method=request.method,
            path=request.url.path,
            query_params=str(request.query_params) if request.query_params else None,
            headers=sanitize_headers(dict(request.headers)),
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
            response.headers[HEADER_REQUEST_ID] = request_id

            logger.info(
                f"Request completed: {request.method} {request.url.path}",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return response
        finally:
            clear_request_id()


def add_request_context_middleware(app: FastAPI) -> None:
    app.add_middleware(RequestContextMiddleware)
