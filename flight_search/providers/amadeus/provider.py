"""
Amadeus Flight Provider

Translates a ``SearchFlightsRequest`` into Amadeus flight-offers query
parameters, validates the structure of the response and maps each offer
to a normalized ``Flight``.
"""

import re
from typing import Any

from flight_search.core.config.constants import Stage
from flight_search.core.exceptions import ProviderApiError
from flight_search.core.logging.logger import get_logger
from flight_search.providers.amadeus.client import AmadeusClient
from flight_search.providers.amadeus.errors import invalid_payload
from flight_search.providers.amadeus.models import FLIGHT_OFFERS_PATH
from flight_search.providers.base_provider import FlightProvider
from flight_search.search.models import (
    Flight,
    Price,
    SearchFlightsRequest,
    Segment,
    SegmentEndpoint,
)

logger = get_logger(__name__)

_ISO_DURATION = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?)?$")


def parse_duration_minutes(duration: str | None) -> int:
    """``PT2H30M`` -> 150, ``P1DT1H`` -> 1500. Unparseable values count as 0."""
    if not duration:
        return 0
    match = _ISO_DURATION.match(duration)
    if not match:
        return 0
    days, hours, minutes = (int(group) if group else 0 for group in match.groups())
    return days * 24 * 60 + hours * 60 + minutes


def build_query_params(request: SearchFlightsRequest) -> dict[str, Any]:
    """Query parameters for GET /v2/shopping/flight-offers; empty optionals are dropped."""
    params: dict[str, Any] = {
        "originLocationCode": request.origin.upper(),
        "destinationLocationCode": request.destination.upper(),
        "departureDate": request.departure_date.isoformat(),
        "adults": request.adults,
    }
    if request.return_date:
        params["returnDate"] = request.return_date.isoformat()
    if request.children > 0:
        params["children"] = request.children
    if request.infants > 0:
        params["infants"] = request.infants
    if request.max_results is not None:
        params["max"] = request.max_results
    if request.travel_class:
        params["travelClass"] = request.travel_class
    if request.included_airlines:
        params["includedAirlineCodes"] = ",".join(request.included_airlines)
    if request.excluded_airlines:
        params["excludedAirlineCodes"] = ",".join(request.excluded_airlines)
    if request.currency:
        params["currencyCode"] = request.currency
    return params


def validate_offers(payload: Any) -> list[dict[str, Any]]:
    """
    Check the parts of the payload the mapper relies on.

    Raises:
        ProviderApiError: status 500 describing the first structural problem
    """
    if not isinstance(payload, dict):
        raise invalid_payload("response is not a JSON object")
    offers = payload.get("data")
    if not isinstance(offers, list):
        raise invalid_payload("response does not contain a list of offers")

    for offer in offers:
        offer_id = offer.get("id") if isinstance(offer, dict) else None
        if not offer_id:
            raise invalid_payload("offer without id")
        price = offer.get("price")
        if not isinstance(price, dict) or not price.get("total") or not price.get("currency"):
            raise invalid_payload(f"offer {offer_id} has no valid price", offer_id=offer_id)
        itineraries = offer.get("itineraries")
        if not isinstance(itineraries, list) or not itineraries:
            raise invalid_payload(f"offer {offer_id} has no itineraries", offer_id=offer_id)
        for itinerary in itineraries:
            segments = itinerary.get("segments") if isinstance(itinerary, dict) else None
            if not isinstance(segments, list) or not segments:
                raise invalid_payload(
                    f"offer {offer_id} has an itinerary without segments", offer_id=offer_id
                )
    return offers


def _map_endpoint(raw: dict[str, Any]) -> SegmentEndpoint:
    return SegmentEndpoint(
        airport=raw.get("iataCode", ""),
        time=raw.get("at", ""),
        terminal=raw.get("terminal"),
    )


def _map_segment(raw: dict[str, Any]) -> Segment:
    carrier = raw.get("carrierCode", "")
    return Segment(
        departure=_map_endpoint(raw.get("departure") or {}),
        arrival=_map_endpoint(raw.get("arrival") or {}),
        duration_minutes=parse_duration_minutes(raw.get("duration")),
        airline=carrier,
        flight_number=f"{carrier}{raw.get('number', '')}",
        aircraft_code=(raw.get("aircraft") or {}).get("code"),
        stops=raw.get("numberOfStops", 0) or 0,
    )


def map_offer(offer: dict[str, Any], provider_name: str) -> Flight:
    try:
        amount = float(offer["price"]["total"])
    except (TypeError, ValueError) as e:
        raise invalid_payload(
            f"offer {offer['id']} has a non-numeric price", offer_id=offer["id"]
        ) from e
    if amount < 0:
        raise invalid_payload(f"offer {offer['id']} has a negative price", offer_id=offer["id"])

    segments = [
        _map_segment(segment)
        for itinerary in offer["itineraries"]
        for segment in itinerary["segments"]
    ]
    # dict.fromkeys keeps first-seen order
    airlines = list(dict.fromkeys(segment.airline for segment in segments))

    return Flight(
        id=str(offer["id"]),
        price=Price(amount=amount, currency=offer["price"]["currency"]),
        segments=segments,
        duration_minutes=sum(segment.duration_minutes for segment in segments),
        airlines=airlines,
        provider=provider_name,
    )


class AmadeusFlightProvider(FlightProvider):
    """Flight provider backed by the Amadeus Self-Service API."""

    def __init__(self, client: AmadeusClient):
        self._client = client

    @property
    def provider_name(self) -> str:
        return "amadeus"

    async def search_flights(self, request: SearchFlightsRequest) -> list[Flight]:
        """
        STAGE-4.1: Provider search
        """
        params = build_query_params(request)
        logger.info(
            "Searching Amadeus flight offers",
            stage=Stage.PROVIDER_CALL.value,
            origin=params["originLocationCode"],
            destination=params["destinationLocationCode"],
            departure_date=params["departureDate"],
            return_date=params.get("returnDate"),
            adults=params["adults"],
        )

        payload = await self._client.get(FLIGHT_OFFERS_PATH, params=params)

        try:
            offers = validate_offers(payload)
            flights = [map_offer(offer, self.provider_name) for offer in offers]
        except ProviderApiError as e:
            logger.error(
                "Unusable Amadeus response",
                stage=Stage.RESPONSE_MAPPING.value,
                error=e.message,
                **e.details,
            )
            raise

        logger.info(
            "Amadeus search completed",
            stage=Stage.RESPONSE_MAPPING.value,
            flights_found=len(flights),
        )
        return flights
