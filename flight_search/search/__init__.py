from .models import Flight, SearchFlightsRequest, SearchFlightsResponse
from .ttl_selector import select_cache_ttl

__all__ = [
    "Flight",
    "SearchFlightsRequest",
    "SearchFlightsResponse",
    "select_cache_ttl",
]
