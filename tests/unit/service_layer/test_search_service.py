"""
Unit Tests for SearchService

Uses a scripted provider and the in-memory cache, so the cache-aside flow
can be observed end to end.
"""

from datetime import date, timedelta

import pytest

from flight_search.core.config.constants import TtlBucket
from flight_search.core.exceptions import CacheConnectionError, ProviderApiError, SearchValidationError
from flight_search.providers.amadeus.provider import map_offer
from flight_search.providers.base_provider import FlightProvider
from flight_search.search.models import SearchFlightsRequest
from flight_search.search.search_service import SearchService, build_cache_key

ONE_WAY_KEY = "search:flights:JFK:LAX:2025-07-01:oneway:1:0:0:all:default:default:all:none"


class ScriptedProvider(FlightProvider):
    def __init__(self, flights=None, error=None):
        self.flights = flights or []
        self.error = error
        self.requests = []

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def search_flights(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.flights


@pytest.fixture
def flights(sample_offer):
    return [map_offer(sample_offer, "scripted")]


@pytest.fixture
def provider(flights):
    return ScriptedProvider(flights)


@pytest.fixture
def service(provider, cache_store):
    return SearchService(provider, cache_store)


@pytest.fixture
def one_way():
    return SearchFlightsRequest(origin="JFK", destination="LAX", departure_date=date(2025, 7, 1))


@pytest.mark.unit
class TestBuildCacheKey:
    def test_one_way_defaults(self, one_way):
        assert build_cache_key(one_way) == ONE_WAY_KEY

    def test_every_parameter_in_key(self):
        request = SearchFlightsRequest(
            origin="jfk",
            destination="cdg",
            departure_date=date(2025, 7, 1),
            return_date=date(2025, 7, 10),
            adults=2,
            children=1,
            infants=1,
            travel_class="ECONOMY",
            max_results=10,
            currency="EUR",
            included_airlines=["DL", "AF"],
            excluded_airlines="UA",
        )

        assert build_cache_key(request) == (
            "search:flights:JFK:CDG:2025-07-01:2025-07-10:2:1:1:ECONOMY:10:EUR:AF,DL:UA"
        )

    def test_airline_order_does_not_matter(self):
        base = {"origin": "JFK", "destination": "LAX", "departure_date": date(2025, 7, 1)}
        first = SearchFlightsRequest(**base, included_airlines=["AA", "DL"])
        second = SearchFlightsRequest(**base, included_airlines="DL,AA")

        assert build_cache_key(first) == build_cache_key(second)

    def test_different_passengers_different_keys(self, one_way):
        two_adults = one_way.model_copy(update={"adults": 2})
        assert build_cache_key(one_way) != build_cache_key(two_adults)


@pytest.mark.unit
class TestCacheAside:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, service, provider, cache_store, one_way, today, flights):
        first = await service.search_flights(one_way, today=today)
        await cache_store.flush_pending_writes()
        second = await service.search_flights(one_way, today=today)

        assert first.meta.from_cache is False
        assert second.meta.from_cache is True
        assert len(provider.requests) == 1
        assert second.flights == flights
        assert second.count == 1

    @pytest.mark.asyncio
    async def test_result_cached_with_date_based_ttl(
        self, service, cache_store, memory_cache, one_way, today
    ):
        await service.search_flights(one_way, today=today)
        await cache_store.flush_pending_writes()

        # 30 days out
        assert await memory_cache.ttl(ONE_WAY_KEY) == int(TtlBucket.LONG)

    @pytest.mark.asyncio
    async def test_near_departure_gets_short_ttl(self, service, cache_store, memory_cache, today):
        request = SearchFlightsRequest(origin="JFK", destination="LAX", departure_date=today)

        await service.search_flights(request, today=today)
        await cache_store.flush_pending_writes()

        assert await memory_cache.ttl(build_cache_key(request)) == int(TtlBucket.SHORT)

    @pytest.mark.asyncio
    async def test_empty_result_is_cached(self, cache_store, one_way, today):
        provider = ScriptedProvider([])
        service = SearchService(provider, cache_store)

        await service.search_flights(one_way, today=today)
        await cache_store.flush_pending_writes()
        response = await service.search_flights(one_way, today=today)

        assert response.count == 0
        assert response.meta.from_cache is True
        assert len(provider.requests) == 1

    @pytest.mark.parametrize("stored", ['"not a list"', '[{"id": 1}]'])
    @pytest.mark.asyncio
    async def test_unreadable_entry_replaced(
        self, service, provider, cache_store, memory_cache, one_way, today, stored
    ):
        await memory_cache.set(ONE_WAY_KEY, stored, 600)

        response = await service.search_flights(one_way, today=today)

        assert response.meta.from_cache is False
        assert response.count == 1
        assert len(provider.requests) == 1
        assert isinstance(await cache_store.get(ONE_WAY_KEY), list)

    @pytest.mark.asyncio
    async def test_cache_outage_falls_through_to_provider(
        self, service, provider, memory_cache, one_way, today
    ):
        memory_cache.fail_with = CacheConnectionError("redis down")

        response = await service.search_flights(one_way, today=today)

        assert response.count == 1
        assert response.meta.from_cache is False


@pytest.mark.unit
class TestFailures:
    @pytest.mark.asyncio
    async def test_provider_error_propagates_and_is_not_cached(
        self, cache_store, memory_cache, one_way, today
    ):
        provider = ScriptedProvider(error=ProviderApiError("rate limited", status_code=429))
        service = SearchService(provider, cache_store)

        with pytest.raises(ProviderApiError):
            await service.search_flights(one_way, today=today)

        await cache_store.flush_pending_writes()
        assert await memory_cache.get(ONE_WAY_KEY) is None

    @pytest.mark.asyncio
    async def test_past_departure_rejected_before_provider(self, service, provider, today):
        request = SearchFlightsRequest(
            origin="JFK", destination="LAX", departure_date=today - timedelta(days=1)
        )

        with pytest.raises(SearchValidationError):
            await service.search_flights(request, today=today)

        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_return_before_departure_rejected(self, service, provider, today):
        request = SearchFlightsRequest(
            origin="JFK",
            destination="LAX",
            departure_date=today + timedelta(days=10),
            return_date=today + timedelta(days=5),
        )

        with pytest.raises(SearchValidationError):
            await service.search_flights(request, today=today)

        assert provider.requests == []


@pytest.mark.unit
class TestResponseMeta:
    @pytest.mark.asyncio
    async def test_meta_fields(self, service, one_way, today):
        response = await service.search_flights(one_way, today=today)

        assert response.meta.provider == "scripted"
        assert response.meta.response_time_ms >= 0
        assert response.meta.searched_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_wire_format_is_camel_case(self, service, one_way, today):
        response = await service.search_flights(one_way, today=today)
        body = response.model_dump(mode="json", by_alias=True)

        assert set(body) == {"flights", "count", "meta"}
        assert set(body["meta"]) == {"responseTimeMs", "provider", "searchedAt", "fromCache"}
        assert body["flights"][0]["price"] == {"amount": 199.99, "currency": "USD"}
