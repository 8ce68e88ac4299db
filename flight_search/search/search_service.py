"""
Flight Search Service

Cache-aside orchestration of a flight search:

1. Pick the cache TTL from the travel dates (also rejects invalid dates)
2. Build a deterministic cache key from every search parameter
3. Serve from the cache store, or call the provider and write back in the
   background
4. Wrap the flights with response metadata
"""

import time
from datetime import date, datetime, timezone

from pydantic import ValidationError as PydanticValidationError

from flight_search.core.config.constants import CACHE_KEY_FLIGHTS, CACHE_KEY_SEARCH, Stage
from flight_search.core.logging.logger import get_logger
from flight_search.infrastructure.cache.cache_store import CacheStore
from flight_search.providers.base_provider import FlightProvider
from flight_search.search.models import (
    Flight,
    SearchFlightsRequest,
    SearchFlightsResponse,
    SearchMeta,
)
from flight_search.search.ttl_selector import select_cache_ttl

logger = get_logger(__name__)


def build_cache_key(request: SearchFlightsRequest) -> str:
    """
    Deterministic key for a search.

    Format:
        search:flights:ORIG:DEST:DEPART:RETURN|oneway:ADULTS:CHILDREN:INFANTS:
        CLASS|all:MAX|default:CURRENCY|default:INCLUDED|all:EXCLUDED|none

    Airline lists are sorted so their order does not split the cache.
    """
    return CacheStore.compose_key(
        CACHE_KEY_SEARCH,
        CACHE_KEY_FLIGHTS,
        request.origin.upper(),
        request.destination.upper(),
        request.departure_date.isoformat(),
        request.return_date.isoformat() if request.return_date else "oneway",
        str(request.adults),
        str(request.children),
        str(request.infants),
        request.travel_class or "all",
        str(request.max_results) if request.max_results is not None else "default",
        request.currency or "default",
        ",".join(sorted(request.included_airlines)) if request.included_airlines else "all",
        ",".join(sorted(request.excluded_airlines)) if request.excluded_airlines else "none",
    )


class SearchService:
    """
    Usage:
        service = SearchService(provider, cache_store)
        response = await service.search_flights(request)
    """

    def __init__(self, provider: FlightProvider, cache: CacheStore):
        self._provider = provider
        self._cache = cache

    @property
    def provider_name(self) -> str:
        return self._provider.provider_name

    async def search_flights(
        self, request: SearchFlightsRequest, today: date | None = None
    ) -> SearchFlightsResponse:
        """
        Raises:
            SearchValidationError: Past dates or return before departure
            ProviderApiError / ResilienceFailure: Provider call failed on a miss
        """
        started = time.perf_counter()
        ttl = select_cache_ttl(request.departure_date, request.return_date, today=today)
        cache_key = build_cache_key(request)

        logger.info(
            "Searching flights",
            stage=Stage.REQUEST_VALIDATION.value,
            origin=request.origin,
            destination=request.destination,
            departure_date=request.departure_date.isoformat(),
            ttl_bucket=ttl.name,
        )

        from_cache = True

        async def produce() -> list[Flight]:
            nonlocal from_cache
            from_cache = False
            logger.debug(
                "Cache miss, querying provider",
                stage=Stage.PROVIDER_CALL.value,
                cache_key=cache_key,
                provider=self._provider.provider_name,
            )
            return await self._provider.search_flights(request)

        try:
            result = await self._cache.wrap(cache_key, int(ttl), produce)
            flights = result if not from_cache else self._load_cached(result)
        except Exception:
            logger.error(
                "Flight search failed",
                stage=Stage.PROVIDER_CALL.value,
                origin=request.origin,
                destination=request.destination,
                response_time_ms=round((time.perf_counter() - started) * 1000, 2),
                exc_info=True,
            )
            raise

        if flights is None:
            # Unreadable cache entry: drop it and go to the provider
            await self._cache.delete(cache_key)
            flights = await produce()
            await self._cache.set(cache_key, flights, int(ttl))

        response_time_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            "Flight search completed",
            stage=Stage.RESPONSE_MAPPING.value,
            flights_found=len(flights),
            from_cache=from_cache,
            response_time_ms=response_time_ms,
        )

        return SearchFlightsResponse(
            flights=flights,
            count=len(flights),
            meta=SearchMeta(
                response_time_ms=response_time_ms,
                provider=self._provider.provider_name,
                searched_at=datetime.now(timezone.utc),
                from_cache=from_cache,
            ),
        )

    @staticmethod
    def _load_cached(cached) -> list[Flight] | None:
        if not isinstance(cached, list):
            return None
        try:
            return [Flight.model_validate(item) for item in cached]
        except PydanticValidationError:
            logger.warning("Discarding unreadable cached search", stage=Stage.CACHE_LOOKUP.value)
            return None
