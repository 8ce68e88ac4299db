"""
Cache TTL Selection for Search Results

Fares for near-term travel move fastest, so the cache lifetime of a search
result shrinks as departure approaches:

    days until the nearer travel date   bucket
    --------------------------------   ---------------------
    0 (today)                           SHORT  (1 hour)
    1 - 7                               MEDIUM (6 hours)
    8 or more                           LONG   (24 hours)
"""

from datetime import date, datetime, timezone

from flight_search.core.config.constants import LONG_TTL_MIN_DAYS, MEDIUM_TTL_MIN_DAYS, TtlBucket
from flight_search.core.exceptions import SearchValidationError


def _parse_date(value: date | str, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise SearchValidationError(
            f"{field} must be a valid date in YYYY-MM-DD format",
            details={"field": field, "value": str(value)},
        ) from e


def select_cache_ttl(
    departure_date: date | str,
    return_date: date | str | None = None,
    today: date | None = None,
) -> TtlBucket:
    """
    Pick the TTL bucket for a search.

    Args:
        departure_date: Outbound date
        return_date: Inbound date for round trips
        today: Reference date; defaults to the current UTC date

    Raises:
        SearchValidationError: Unparseable or past dates, or a return date
            before the departure date
    """
    today = today or datetime.now(timezone.utc).date()
    departure = _parse_date(departure_date, "departureDate")

    days = (departure - today).days
    if days < 0:
        raise SearchValidationError(
            "departureDate cannot be in the past",
            details={"field": "departureDate", "value": departure.isoformat()},
        )

    if return_date is not None:
        inbound = _parse_date(return_date, "returnDate")
        if inbound < today:
            raise SearchValidationError(
                "returnDate cannot be in the past",
                details={"field": "returnDate", "value": inbound.isoformat()},
            )
        if inbound < departure:
            raise SearchValidationError(
                "returnDate must be on or after departureDate",
                details={"departureDate": departure.isoformat(), "returnDate": inbound.isoformat()},
            )
        days = min(days, (inbound - today).days)

    if days >= LONG_TTL_MIN_DAYS:
        return TtlBucket.LONG
    if days >= MEDIUM_TTL_MIN_DAYS:
        return TtlBucket.MEDIUM
    return TtlBucket.SHORT
