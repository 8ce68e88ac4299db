"""
Pytest Configuration and Shared Test Fixtures

This module provides reusable fixtures for all tests. All fixtures defined
here are automatically available to all test files.

Time is faked wherever a component accepts a clock or a sleep coroutine, so
breaker cooldowns and retry backoff run instantly. Only the timeout guard
tests use the real event loop clock.
"""

from datetime import date, timedelta

import httpx
import pytest

from flight_search.core.config.settings import AmadeusSettings, ResilienceSettings
from flight_search.core.interfaces.cache import InMemoryCache
from flight_search.core.resilience.executor import ResilienceExecutor
from flight_search.infrastructure.cache.cache_store import CacheStore
from flight_search.providers.amadeus.client import AmadeusClient, create_http_client
from flight_search.providers.amadeus.models import OAUTH_TOKEN_PATH
from flight_search.providers.amadeus.provider import AmadeusFlightProvider
from flight_search.providers.amadeus.token_manager import AmadeusTokenManager

# ============================================================================
# Time Fixtures
# ============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays (seconds)."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def calls_ms(self) -> list[float]:
        return [round(seconds * 1000) for seconds in self.calls]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def today():
    return date(2025, 6, 1)


@pytest.fixture
def next_month(today):
    return today + timedelta(days=30)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def resilience_settings():
    return ResilienceSettings(
        RES_TIMEOUT_MS=1000,
        RES_RETRY_ATTEMPTS=3,
        RES_RETRY_BASE_MS=200,
        RES_RETRY_MAX_DELAY_MS=2000,
        RES_RETRY_MULTIPLIER=2.0,
        RES_CB_FAILURE_THRESHOLD=3,
        RES_CB_HALFOPEN_MS=10000,
        RES_CB_SUCCESS_THRESHOLD=1,
    )


@pytest.fixture
def amadeus_settings():
    return AmadeusSettings(
        AMADEUS_API_KEY="test-key",
        AMADEUS_API_SECRET="test-secret",
        AMADEUS_BASE_URL="https://amadeus.test",
        AMADEUS_TOKEN_CACHE_TTL=3300,
        AMADEUS_TOKEN_TTL_FRACTION=0.9,
    )


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
async def memory_cache(clock):
    cache = InMemoryCache(clock=clock)
    await cache.connect()
    return cache


@pytest.fixture
def cache_store(memory_cache):
    return CacheStore(memory_cache)


# ============================================================================
# Resilience Fixtures
# ============================================================================


@pytest.fixture
def executor(resilience_settings, sleep, clock):
    return ResilienceExecutor(resilience_settings, sleep=sleep, clock=clock)


# ============================================================================
# Amadeus Fixtures
# ============================================================================


def token_response(token: str = "token-1", expires_in: int = 1799) -> httpx.Response:
    return httpx.Response(
        200, json={"access_token": token, "expires_in": expires_in, "token_type": "Bearer"}
    )


def amadeus_error(status: int, title: str = "Error", detail: str = "", code: int = 0) -> httpx.Response:
    return httpx.Response(
        status,
        json={"errors": [{"status": status, "code": code, "title": title, "detail": detail}]},
    )


class AmadeusStub:
    """
    Scripted Amadeus API for ``httpx.MockTransport``.

    Queue ``httpx.Response`` objects (or httpx exceptions to raise) on
    ``token_responses`` / ``api_responses``; once a queue is empty the
    default response is served.
    """

    def __init__(self):
        self.token_responses: list = []
        self.api_responses: list = []
        self.requests: list[httpx.Request] = []
        self.token_calls = 0
        self.api_calls = 0

    @staticmethod
    def _next(queue: list, default: httpx.Response) -> httpx.Response:
        item = queue.pop(0) if queue else default
        if isinstance(item, Exception):
            raise item
        return item

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == OAUTH_TOKEN_PATH:
            self.token_calls += 1
            return self._next(self.token_responses, token_response())
        self.api_calls += 1
        return self._next(self.api_responses, httpx.Response(200, json={"data": []}))

    @property
    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path != OAUTH_TOKEN_PATH]


@pytest.fixture
def amadeus_stub():
    return AmadeusStub()


@pytest.fixture
async def http_client(amadeus_settings, amadeus_stub):
    client = create_http_client(amadeus_settings, transport=httpx.MockTransport(amadeus_stub.handler))
    yield client
    await client.aclose()


@pytest.fixture
def token_manager(cache_store, executor, http_client, amadeus_settings):
    return AmadeusTokenManager(cache_store, executor, http_client, amadeus_settings)


@pytest.fixture
def amadeus_client(token_manager, executor, http_client):
    return AmadeusClient(token_manager, executor, http_client)


@pytest.fixture
def amadeus_provider(amadeus_client):
    return AmadeusFlightProvider(amadeus_client)


@pytest.fixture
def sample_offer():
    """One-way JFK -> LAX offer in Amadeus flight-offers format."""
    return {
        "id": "1",
        "price": {"total": "199.99", "currency": "USD"},
        "itineraries": [
            {
                "duration": "PT5H30M",
                "segments": [
                    {
                        "departure": {"iataCode": "JFK", "at": "2025-07-01T08:00:00", "terminal": "4"},
                        "arrival": {"iataCode": "LAX", "at": "2025-07-01T11:30:00"},
                        "carrierCode": "AA",
                        "number": "100",
                        "aircraft": {"code": "321"},
                        "duration": "PT5H30M",
                        "numberOfStops": 0,
                    }
                ],
            }
        ],
    }


@pytest.fixture
def make_token_response():
    return token_response


@pytest.fixture
def make_amadeus_error():
    return amadeus_error
