"""Tests for calendar-date helpers — parsing, normalisation, day counts."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from leave_management.common.dates import (
    InvalidDateFormat,
    InvalidDateRange,
    add_days,
    days_in_month,
    format_calendar_date,
    inclusive_day_count,
    is_leap_year,
    is_valid_calendar_date,
    parse_calendar_date,
    to_utc_midnight,
)


# ═════════════════════════════════════════════════════════════════════
# PARSING
# ═════════════════════════════════════════════════════════════════════


class TestParseCalendarDate:

    def test_parses_to_utc_midnight(self):
        parsed = parse_calendar_date("2024-06-01")
        assert parsed == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert parsed.tzinfo is not None
        assert parsed.utcoffset() == timedelta(0)

    @pytest.mark.parametrize(
        "value",
        ["2024-6-1", "01-06-2024", "2024/06/01", "2024-06-01T00:00:00", "", "abc", " 2024-06-01 ", "2024-06-01\n"],
    )
    def test_rejects_wrong_shape(self, value):
        with pytest.raises(InvalidDateFormat):
            parse_calendar_date(value)

    @pytest.mark.parametrize("value", ["2024-02-30", "2023-02-29", "2024-13-01", "2024-00-10"])
    def test_rejects_impossible_days(self, value):
        with pytest.raises(InvalidDateFormat):
            parse_calendar_date(value)

    def test_leap_day_is_valid_in_leap_year(self):
        assert parse_calendar_date("2024-02-29").day == 29

    def test_invalid_format_is_value_error(self):
        with pytest.raises(ValueError):
            parse_calendar_date("nope")

    def test_is_valid_calendar_date(self):
        assert is_valid_calendar_date("2024-06-01") is True
        assert is_valid_calendar_date("2024-02-30") is False
        assert is_valid_calendar_date(None) is False
        assert is_valid_calendar_date(20240601) is False


# ═════════════════════════════════════════════════════════════════════
# NORMALISATION
# ═════════════════════════════════════════════════════════════════════


class TestToUtcMidnight:

    def test_date(self):
        assert to_utc_midnight(date(2024, 6, 1)) == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_naive_datetime_is_treated_as_utc(self):
        result = to_utc_midnight(datetime(2024, 6, 1, 23, 59))
        assert result == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_aware_datetime_uses_its_utc_day(self):
        # 01:30 at UTC+05:30 is still the previous UTC day.
        ist = timezone(timedelta(hours=5, minutes=30))
        result = to_utc_midnight(datetime(2024, 6, 2, 1, 30, tzinfo=ist))
        assert result == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_string(self):
        assert to_utc_midnight("2024-06-01") == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            to_utc_midnight(12345)

    def test_format_round_trip_of_a_day(self):
        assert format_calendar_date(datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc)) == "2024-06-01"
        assert format_calendar_date(date(2024, 12, 31)) == "2024-12-31"


# ═════════════════════════════════════════════════════════════════════
# ARITHMETIC
# ═════════════════════════════════════════════════════════════════════


class TestInclusiveDayCount:

    def test_same_day_counts_one(self):
        assert inclusive_day_count("2024-06-01", "2024-06-01") == 1

    def test_five_day_range(self):
        assert inclusive_day_count("2024-06-01", "2024-06-05") == 5

    def test_across_month_and_leap_day(self):
        assert inclusive_day_count("2024-02-28", "2024-03-01") == 3

    def test_across_year(self):
        assert inclusive_day_count(date(2023, 12, 31), date(2024, 1, 1)) == 2

    def test_time_of_day_is_ignored(self):
        start = datetime(2024, 6, 1, 22, 0, tzinfo=timezone.utc)
        end = datetime(2024, 6, 2, 1, 0, tzinfo=timezone.utc)
        assert inclusive_day_count(start, end) == 2

    def test_start_after_end_raises(self):
        with pytest.raises(InvalidDateRange):
            inclusive_day_count("2024-06-05", "2024-06-01")


class TestCalendarHelpers:

    def test_add_days(self):
        assert add_days("2024-02-28", 2) == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert add_days("2024-03-01", -1) == datetime(2024, 2, 29, tzinfo=timezone.utc)

    def test_add_days_requires_int(self):
        with pytest.raises(ValueError):
            add_days("2024-03-01", 1.5)
        with pytest.raises(ValueError):
            add_days("2024-03-01", True)

    @pytest.mark.parametrize(
        "year, expected",
        [(2024, True), (2023, False), (1900, False), (2000, True)],
    )
    def test_is_leap_year(self, year, expected):
        assert is_leap_year(year) is expected

    def test_is_leap_year_rejects_non_int(self):
        with pytest.raises(ValueError):
            is_leap_year("2024")

    def test_days_in_month(self):
        assert days_in_month(2, 2024) == 29
        assert days_in_month(2, 2023) == 28
        assert days_in_month(4, 2024) == 30
        assert days_in_month(12, 2024) == 31

    @pytest.mark.parametrize("month", [0, 13, "2", None])
    def test_days_in_month_rejects_bad_month(self, month):
        with pytest.raises(ValueError):
            days_in_month(month, 2024)
