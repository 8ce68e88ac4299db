#!/usr/bin/env python3
"""
Base Flight Provider

Abstract base class for flight data providers. The search service depends
only on this interface; Amadeus is the one concrete implementation.
"""

from abc import ABC, abstractmethod

from flight_search.search.models import Flight, SearchFlightsRequest


class FlightProvider(ABC):
    """
    Abstract base class for flight providers.

    STAGE-4: Provider interface

    Subclasses must implement:
    - provider_name: Short identifier reported in response metadata
    - search_flights(): Query the provider and return normalized flights
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def search_flights(self, request: SearchFlightsRequest) -> list[Flight]:
        """
        Search flight offers.

        Raises:
            ProviderApiError: Provider rejected the request or returned an
                unusable payload
            ResilienceFailure: The protected call path gave up
        """
        ...
