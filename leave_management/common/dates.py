"""Calendar-date helpers.

Every calendar value handled by the service is normalised to midnight UTC
so that a ``YYYY-MM-DD`` string means the same instant on client and
server regardless of either side's local timezone.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Union

from leave_management.common.constants import CALENDAR_DATE_FORMAT

DateLike = Union[str, date, datetime]

_CALENDAR_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_ONE_DAY = timedelta(days=1)


class InvalidDateFormat(ValueError):
    """The value is not a strict ``YYYY-MM-DD`` calendar date."""


class InvalidDateRange(ValueError):
    """The start of a range falls after its end."""


# ── Parsing / formatting ────────────────────────────────────────────

def parse_calendar_date(value: str) -> datetime:
    """Parse a strict ``YYYY-MM-DD`` string into an aware UTC-midnight datetime.

    Raises:
        InvalidDateFormat: the string does not match the pattern or names a
            day that does not exist (``2023-02-29``, ``2024-13-01``).
    """
    if not isinstance(value, str) or not _CALENDAR_DATE_RE.fullmatch(value):
        raise InvalidDateFormat(f"Invalid date format: {value!r}. Use YYYY-MM-DD.")
    try:
        parsed = datetime.strptime(value, CALENDAR_DATE_FORMAT)
    except ValueError as exc:
        raise InvalidDateFormat(f"{value!r} is not a real calendar date.") from exc
    return parsed.replace(tzinfo=timezone.utc)


def is_valid_calendar_date(value: object) -> bool:
    try:
        parse_calendar_date(value)  # type: ignore[arg-type]
    except InvalidDateFormat:
        return False
    return True


def format_calendar_date(value: DateLike) -> str:
    """Render the UTC calendar day of *value* as ``YYYY-MM-DD``."""
    return to_utc_midnight(value).strftime(CALENDAR_DATE_FORMAT)


# ── Normalisation ───────────────────────────────────────────────────

def to_utc_midnight(value: DateLike) -> datetime:
    """Return midnight UTC of the UTC calendar day that *value* falls on.

    Naive datetimes are taken to already be in UTC.
    """
    if isinstance(value, str):
        return parse_calendar_date(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)
        return datetime.combine(value.date(), time.min, tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise TypeError(f"Unsupported date value: {value!r}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> datetime:
    return to_utc_midnight(utc_now())


# ── Arithmetic ──────────────────────────────────────────────────────

def inclusive_day_count(start: DateLike, end: DateLike) -> int:
    """Number of calendar days from *start* to *end*, both ends counted.

    >>> inclusive_day_count("2024-06-01", "2024-06-05")
    5

    Raises:
        InvalidDateRange: *start* is after *end*.
    """
    start_utc = to_utc_midnight(start)
    end_utc = to_utc_midnight(end)
    if start_utc > end_utc:
        raise InvalidDateRange("Start date cannot be after end date.")
    return (end_utc - start_utc) // _ONE_DAY + 1


def add_days(value: DateLike, days: int) -> datetime:
    if not isinstance(days, int) or isinstance(days, bool):
        raise ValueError("days must be an integer.")
    return to_utc_midnight(value) + timedelta(days=days)


def is_leap_year(year: int) -> bool:
    if not isinstance(year, int) or isinstance(year, bool):
        raise ValueError("Year must be a valid integer.")
    return calendar.isleap(year)


def days_in_month(month: int, year: int) -> int:
    """Days in *month* (1–12) of *year*."""
    if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
        raise ValueError("Month must be an integer between 1 and 12.")
    if not isinstance(year, int) or isinstance(year, bool):
        raise ValueError("Year must be a valid integer.")
    return calendar.monthrange(year, month)[1]
