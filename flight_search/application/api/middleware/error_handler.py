"""
Error Handling - HTTP Edge

Translates domain exceptions into HTTP responses. Two pieces work together:

1. Exception handlers (registered on the app) for the known hierarchy:
   - SearchValidationError / ValidationError -> 400
   - ProviderApiError -> the provider's status code
   - ResilienceFailure -> the wrapped provider status, 504 for a timeout,
     503 for an open circuit, 502 otherwise
   - Any other FlightSearchError -> 500
   - FastAPI request validation errors -> 400

2. ErrorHandlingMiddleware, a catch-all for anything else. Clients get a
   generic 500 body with the request ID; the stack trace stays in the logs.
"""

import traceback
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from flight_search.core.config.constants import HEADER_REQUEST_ID, FailurePolicy
from flight_search.core.exceptions import (
    CircuitBreakerOpenError,
    FlightSearchError,
    OperationTimeoutError,
    ProviderApiError,
    ResilienceFailure,
    ValidationError,
)
from flight_search.core.logging.logger import get_logger, get_request_id

logger = get_logger(__name__)


def status_for_error(exc: FlightSearchError) -> int:
    """HTTP status code for a domain exception."""
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, ProviderApiError):
        return exc.status_code
    if isinstance(exc, ResilienceFailure):
        cause = exc.root_cause()
        if isinstance(cause, ProviderApiError):
            return cause.status_code
        if isinstance(cause, OperationTimeoutError) or exc.classification == FailurePolicy.TIMEOUT:
            return 504
        if (
            isinstance(cause, CircuitBreakerOpenError)
            or exc.classification == FailurePolicy.CIRCUIT_BREAKER
        ):
            return 503
        return 502
    if isinstance(exc, OperationTimeoutError):
        return 504
    if isinstance(exc, CircuitBreakerOpenError):
        return 503
    return 500


def _error_body(exc: FlightSearchError, status_code: int) -> dict:
    body = exc.to_dict()
    body["status_code"] = status_code
    body["request_id"] = exc.request_id or get_request_id()
    if isinstance(exc, ResilienceFailure):
        cause = exc.root_cause()
        if isinstance(cause, ProviderApiError) and cause.errors:
            body["details"]["errors"] = cause.errors
    return body


async def flight_search_exception_handler(request: Request, exc: FlightSearchError) -> JSONResponse:
    status_code = status_for_error(exc)
    log = logger.warning if status_code < 500 else logger.error
    log(
        f"Request failed: {exc.message}",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=status_code,
    )
    request_id = exc.request_id or get_request_id() or ""
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc, status_code),
        headers={HEADER_REQUEST_ID: request_id},
    )


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    logger.warning(
        "Request validation failed",
        method=request.method,
        path=request.url.path,
        errors=len(errors),
    )
    return JSONResponse(
        status_code=400,
        content={
            "error_type": "RequestValidationError",
            "message": "Invalid request parameters",
            "request_id": get_request_id(),
            "status_code": 400,
            "details": {"errors": errors},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FlightSearchError, flight_search_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Last line of defense for exceptions no handler claimed.

    Args:
        include_traceback: Add the stack trace to the response body
                           (development only)
    """

    def __init__(self, app, include_traceback: bool = False):
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                f"Unhandled exception in request: {request.method} {request.url.path}",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True,
            )

            error_response = {
                "error_type": "InternalServerError",
                "message": "An unexpected error occurred while processing your request",
                "request_id": get_request_id(),
                "status_code": 500,
            }
            if self.include_traceback:
                error_response["traceback"] = traceback.format_exc()
                error_response["detail"] = str(e)

            return JSONResponse(status_code=500, content=error_response)


def add_error_handling_middleware(app: FastAPI, include_traceback: bool = False) -> None:
    """Register the domain exception handlers and the catch-all middleware."""
    register_exception_handlers(app)
    app.add_middleware(ErrorHandlingMiddleware, include_traceback=include_traceback)
    logger.info("Error handling middleware registered", include_traceback=include_traceback)
