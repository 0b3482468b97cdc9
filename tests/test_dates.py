"""
Tests for canonical date handling.

These tests verify:
  - Only the exact YYYY-MM-DDTHH:mm:ss.sssZ shape is accepted
  - Canonicalisation is idempotent
  - Month and year boundaries (leap years included)
  - Canonical strings sort chronologically
  - Local wall-clock to UTC conversion
"""

from datetime import datetime, timedelta, timezone

import pytest

from ledger_api.dates import (
    format_canonical,
    from_canonical_utc,
    is_canonical,
    local_to_utc,
    month_range,
    now,
    to_canonical_utc,
    year_range,
)
from ledger_api.exceptions import InvalidDateFormatError


class TestCanonicalFormat:
    """Tests for parsing and validating canonical strings."""

    def test_accepts_canonical_string(self):
        assert to_canonical_utc("2025-01-15T00:00:00.000Z") == "2025-01-15T00:00:00.000Z"

    @pytest.mark.parametrize(
        "value",
        [
            "2025-01-15",
            "2025-01-15T00:00:00Z",
            "2025-01-15T00:00:00.000",
            "2025-01-15T00:00:00.000+01:00",
            "2025-1-15T00:00:00.000Z",
            "",
        ],
    )
    def test_rejects_other_shapes(self, value):
        assert not is_canonical(value)
        with pytest.raises(InvalidDateFormatError):
            to_canonical_utc(value)

    def test_rejects_impossible_calendar_date(self):
        """Right shape, but there is no 13th month."""
        assert is_canonical("2025-13-01T00:00:00.000Z")
        with pytest.raises(InvalidDateFormatError):
            from_canonical_utc("2025-13-01T00:00:00.000Z")

    def test_rejects_non_string(self):
        with pytest.raises(InvalidDateFormatError):
            to_canonical_utc(20250115)

    def test_idempotent(self):
        once = to_canonical_utc("2024-02-29T13:45:10.123Z")
        assert to_canonical_utc(once) == once

    @pytest.mark.parametrize(
        "value", ["0001-01-15T00:00:00.000Z", "0999-12-31T23:59:59.999Z"]
    )
    def test_early_years_stay_zero_padded(self, value):
        assert to_canonical_utc(value) == value
        assert is_canonical(format_canonical(datetime(999, 1, 1)))

    def test_datetime_input_is_converted_to_utc(self):
        madrid_winter = timezone(timedelta(hours=1))
        moment = datetime(2025, 1, 15, 9, 30, 0, 456789, tzinfo=madrid_winter)
        assert to_canonical_utc(moment) == "2025-01-15T08:30:00.456Z"

    def test_naive_datetime_is_taken_as_utc(self):
        assert format_canonical(datetime(2025, 3, 1)) == "2025-03-01T00:00:00.000Z"

    def test_parsed_value_is_aware_utc(self):
        parsed = from_canonical_utc("2025-06-30T23:59:59.999Z")
        assert parsed.tzinfo is timezone.utc
        assert parsed.microsecond == 999000

    def test_now_is_canonical(self):
        assert is_canonical(now())

    def test_string_order_is_chronological(self):
        values = [
            "2025-01-15T10:00:00.000Z",
            "2024-12-31T23:59:59.999Z",
            "2025-01-15T09:59:59.999Z",
            "2025-10-01T00:00:00.000Z",
        ]
        assert sorted(values) == sorted(values, key=from_canonical_utc)


class TestRanges:
    """Tests for month and year boundaries."""

    def test_month_range(self):
        assert month_range(2025, 1) == (
            "2025-01-01T00:00:00.000Z",
            "2025-01-31T23:59:59.999Z",
        )

    def test_february_leap_year(self):
        assert month_range(2024, 2).end == "2024-02-29T23:59:59.999Z"

    def test_february_common_year(self):
        assert month_range(2025, 2).end == "2025-02-28T23:59:59.999Z"

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month(self, month):
        with pytest.raises(InvalidDateFormatError):
            month_range(2025, month)

    def test_year_range(self):
        period = year_range(2025)
        assert period.start == "2025-01-01T00:00:00.000Z"
        assert period.end == "2025-12-31T23:59:59.999Z"


class TestLocalToUtc:
    """Tests for converting a local wall-clock value to canonical UTC."""

    def test_winter_offset(self):
        assert local_to_utc("2025-01-15T09:30:00", "Europe/Madrid") == "2025-01-15T08:30:00.000Z"

    def test_summer_offset(self):
        assert local_to_utc("2025-07-15T09:30:00", "Europe/Madrid") == "2025-07-15T07:30:00.000Z"

    def test_explicit_offset_wins(self):
        assert local_to_utc("2025-01-15T09:30:00+00:00", "Europe/Madrid") == "2025-01-15T09:30:00.000Z"

    def test_unknown_zone(self):
        with pytest.raises(InvalidDateFormatError):
            local_to_utc("2025-01-15T09:30:00", "Not/AZone")

    def test_unparsable_value(self):
        with pytest.raises(InvalidDateFormatError):
            local_to_utc("yesterday", "UTC")
