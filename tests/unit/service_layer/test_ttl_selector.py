"""
Unit Tests for Cache TTL Selection
"""

from datetime import date, timedelta

import pytest

from flight_search.core.config.constants import TtlBucket
from flight_search.core.exceptions import SearchValidationError
from flight_search.search.ttl_selector import select_cache_ttl


@pytest.mark.unit
class TestBuckets:
    @pytest.mark.parametrize(
        "days_ahead, bucket",
        [
            (0, TtlBucket.SHORT),
            (1, TtlBucket.MEDIUM),
            (7, TtlBucket.MEDIUM),
            (8, TtlBucket.LONG),
            (300, TtlBucket.LONG),
        ],
    )
    def test_one_way(self, today, days_ahead, bucket):
        assert select_cache_ttl(today + timedelta(days=days_ahead), today=today) is bucket

    def test_bucket_values(self):
        assert (int(TtlBucket.SHORT), int(TtlBucket.MEDIUM), int(TtlBucket.LONG)) == (
            3600,
            21600,
            86400,
        )

    def test_round_trip_uses_both_dates(self, today):
        departure = today + timedelta(days=10)
        inbound = today + timedelta(days=20)

        assert select_cache_ttl(departure, inbound, today=today) is TtlBucket.LONG

    def test_same_day_return(self, today):
        assert select_cache_ttl(today, today, today=today) is TtlBucket.SHORT

    def test_iso_strings_accepted(self, today):
        assert select_cache_ttl("2025-06-04", "2025-06-30", today=today) is TtlBucket.MEDIUM

    def test_defaults_to_current_date(self):
        far_future = date.today() + timedelta(days=60)
        assert select_cache_ttl(far_future) is TtlBucket.LONG


@pytest.mark.unit
class TestInvalidDates:
    def test_departure_in_the_past(self, today):
        with pytest.raises(SearchValidationError, match="departureDate cannot be in the past"):
            select_cache_ttl(today - timedelta(days=1), today=today)

    def test_return_before_departure(self, today):
        with pytest.raises(SearchValidationError, match="on or after departureDate"):
            select_cache_ttl(today + timedelta(days=5), today + timedelta(days=4), today=today)

    @pytest.mark.parametrize("value", ["2025-13-01", "next tuesday", ""])
    def test_unparseable_departure(self, today, value):
        with pytest.raises(SearchValidationError) as exc_info:
            select_cache_ttl(value, today=today)

        assert exc_info.value.details["field"] == "departureDate"

    def test_unparseable_return(self, today):
        with pytest.raises(SearchValidationError) as exc_info:
            select_cache_ttl("2025-06-10", "soon", today=today)

        assert exc_info.value.details["field"] == "returnDate"
