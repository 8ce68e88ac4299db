"""
Search Models

Pydantic models for the flight search request and the normalized,
provider-independent response.

Field names are snake_case in Python and camelCase on the wire
(``departureDate``, ``maxResults``, ``durationMinutes``). Either spelling is
accepted on input.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TravelClass = Literal["ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# REQUEST
# ============================================================================


class SearchFlightsRequest(CamelModel):
    """
    Flight search parameters.

    Date logic (past dates, return before departure) is checked by the TTL
    selector, not here, so that the request model stays a pure shape check.
    """

    origin: str = Field(..., min_length=3, max_length=3, description="Origin IATA code")
    destination: str = Field(..., min_length=3, max_length=3, description="Destination IATA code")
    departure_date: date = Field(..., description="Departure date (YYYY-MM-DD)")
    return_date: date | None = Field(default=None, description="Return date (YYYY-MM-DD)")
    adults: int = Field(default=1, ge=1, le=9)
    children: int = Field(default=0, ge=0, le=9)
    infants: int = Field(default=0, ge=0, le=9)
    max_results: int | None = Field(default=None, ge=1, le=250)
    travel_class: TravelClass | None = None
    included_airlines: list[str] | None = Field(
        default=None, description="Two-letter airline codes, list or comma separated"
    )
    excluded_airlines: list[str] | None = Field(
        default=None, description="Two-letter airline codes, list or comma separated"
    )
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    @field_validator("origin", "destination")
    @classmethod
    def validate_iata(cls, v: str) -> str:
        if not v.isalpha():
            raise ValueError("IATA code must contain letters only")
        return v.upper()

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str | None) -> str | None:
        return v.upper() if v else v

    @field_validator("travel_class", mode="before")
    @classmethod
    def normalize_travel_class(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("included_airlines", "excluded_airlines", mode="before")
    @classmethod
    def split_airlines(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            # Repeated query params may themselves be comma separated
            codes = [code.strip() for item in v for code in str(item).split(",")]
            return [code for code in codes if code] or None
        return v

    @field_validator("included_airlines", "excluded_airlines")
    @classmethod
    def validate_airlines(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        for code in v:
            if len(code) != 2 or not code.isalnum():
                raise ValueError(f"Airline code '{code}' must be exactly 2 characters")
        return [code.upper() for code in v]


# ============================================================================
# RESPONSE
# ============================================================================


class Price(CamelModel):
    amount: float
    currency: str


class SegmentEndpoint(CamelModel):
    airport: str
    time: str
    terminal: str | None = None


class Segment(CamelModel):
    departure: SegmentEndpoint
    arrival: SegmentEndpoint
    duration_minutes: int
    airline: str
    flight_number: str
    aircraft_code: str | None = None
    stops: int = 0


class Flight(CamelModel):
    """One bookable offer, normalized across providers."""

    id: str
    price: Price
    segments: list[Segment]
    duration_minutes: int
    airlines: list[str]
    provider: str


class SearchMeta(CamelModel):
    response_time_ms: float
    provider: str
    searched_at: datetime
    from_cache: bool


class SearchFlightsResponse(CamelModel):
    flights: list[Flight]
    count: int
    meta: SearchMeta
