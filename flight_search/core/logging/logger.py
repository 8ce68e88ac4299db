#!/usr/bin/env python3
"""
Structured Logging Module using structlog

This module provides structured logging for the flight search service with:
- Request ID correlation across cache, resilience and provider layers
- Stage identifiers for execution flow (see ``Stage`` in constants)
- JSON formatting for log aggregation
- Redaction of provider credentials (bearer tokens, client secrets)

Architectural Decision: structlog over stdlib logging
- Keyword metadata instead of formatted strings
- Context variables survive across awaits within one request
- JSON output in production, colored console output in development

Author: System Architect
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

from flight_search.core.config.settings import get_settings

# Context variable holding the request ID of the current task
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# Event fields whose values are never written to logs
SENSITIVE_FIELDS = frozenset(
    {"access_token", "client_secret", "api_secret", "authorization", "password"}
)

_BEARER_PATTERN = re.compile(r"\bBearer\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_SECRET_PATTERN = re.compile(r"(client_secret=)[^&\s]+", re.IGNORECASE)


def add_request_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add request ID to log event from context variable.

    STAGE-L.1: Request ID injection
    """
    request_id = request_id_ctx.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add ISO timestamp to log event.

    STAGE-L.2: Timestamp injection
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def redact_credentials(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Redact provider credentials from log events.

    STAGE-L.3: Credential redaction

    Patterns redacted:
    - ``Bearer <token>`` in the message -> ``Bearer [REDACTED]``
    - ``client_secret=<value>`` in the message -> ``client_secret=[REDACTED]``
    - Any field named in SENSITIVE_FIELDS -> ``[REDACTED]``
    """
    message = event_dict.get("event", "")

    if isinstance(message, str):
        message = _BEARER_PATTERN.sub("Bearer [REDACTED]", message)
        message = _SECRET_PATTERN.sub(r"\1[REDACTED]", message)
        event_dict["event"] = message

    for field in SENSITIVE_FIELDS.intersection(event_dict):
        event_dict[field] = "[REDACTED]"

    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Upper-case the level name.

    STAGE-L.4: Log level injection
    """
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    settings = get_settings()

    log_level = log_level or settings.logging.LOG_LEVEL
    log_format = log_format or settings.logging.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_request_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_credentials,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("Cache hit", stage=Stage.CACHE_LOOKUP, key=key)
    """
    return structlog.get_logger(name)


def set_request_id(request_id: str) -> None:
    """
    Set request ID in context for the current request.

    STAGE-1.1: Request ID context initialization
    """
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def clear_request_id() -> None:
    """
    Clear request ID from context.

    STAGE-6: Request ID context cleanup
    """
    request_id_ctx.set(None)
