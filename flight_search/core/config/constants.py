"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the flight search service.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic numbers
- Type-safe enums for state management
- Easy to update and track changes

Author: System Architect
"""

from enum import Enum, IntEnum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Request processing stages used as the ``stage`` field of log events.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}
    - SEQUENCE: Numeric order (0.0, 1.0, 2.0) or alphabetic prefix (CB, R, T)
    - DESCRIPTIVE_NAME: Clear, uppercase description with underscores
    """

    # Main Request Lifecycle
    INITIALIZATION = "0.0_INITIALIZATION"
    REQUEST_VALIDATION = "1.0_REQUEST_VALIDATION"
    CACHE_LOOKUP = "2.0_CACHE_LOOKUP"
    CACHE_WRITE = "2.1_CACHE_WRITE"
    CACHE_INVALIDATION = "2.2_CACHE_INVALIDATION"
    CREDENTIALS = "3.0_CREDENTIALS"
    PROVIDER_CALL = "4.0_PROVIDER_CALL"
    RESPONSE_MAPPING = "5.0_RESPONSE_MAPPING"
    CLEANUP = "6.0_CLEANUP"

    # Cross-Cutting Concerns
    CIRCUIT_BREAKER = "CB_CIRCUIT_BREAKER"
    RETRY = "R_RETRY_LOGIC"
    TIMEOUT = "T_TIMEOUT"
    RESILIENCE = "RS_RESILIENCE_EXECUTOR"


# ============================================================================
# Circuit Breaker States
# ============================================================================


class CircuitState(str, Enum):
    """
    Circuit breaker states.

    CLOSED: Normal operation, requests allowed
    OPEN: Failing fast, requests blocked
    HALF_OPEN: Testing recovery, one probe at a time
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class FailurePolicy(str, Enum):
    """Which resilience layer produced the final failure of an execution."""

    TIMEOUT = "timeout"
    RETRY = "retry"
    CIRCUIT_BREAKER = "circuit_breaker"
    UNKNOWN = "unknown"


# ============================================================================
# Cache TTL Buckets
# ============================================================================


class TtlBucket(IntEnum):
    """
    Expiry buckets for cached search results, in seconds.

    Searches close to departure change price and availability quickly, so
    they get the shortest TTL.
    """

    SHORT = 3600  # 1 hour: departure today
    MEDIUM = 21600  # 6 hours: departure within a week
    LONG = 86400  # 24 hours: departure more than a week away


LONG_TTL_MIN_DAYS = 8  # first day count that maps to TtlBucket.LONG
MEDIUM_TTL_MIN_DAYS = 1

# ============================================================================
# Resilience Defaults
# ============================================================================

MAX_CACHED_POLICIES = 100
DEFAULT_RETRY_MAX_DELAY_MS = 2000
DEFAULT_RETRY_MULTIPLIER = 2.0

# Operation keys used with the resilience executor
OPERATION_AMADEUS_TOKEN = "amadeus.token"
OPERATION_AMADEUS_API = "amadeus.api"

# Per-call timeout for provider HTTP work, in milliseconds
PROVIDER_CALL_TIMEOUT_MS = 10_000

# ============================================================================
# Cache Keys & Batching
# ============================================================================

CACHE_KEY_SEPARATOR = ":"
CACHE_KEY_SEARCH = "search"
CACHE_KEY_FLIGHTS = "flights"
CACHE_KEY_AMADEUS_TOKEN = "auth:amadeus:token"

SCAN_BATCH_SIZE = 100  # COUNT hint per SCAN round-trip
DELETE_BATCH_SIZE = 500  # keys per DEL command
MAX_PATTERN_DELETE_KEYS = 10_000  # hard cap on keys collected per pattern delete

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
