"""
Date normalization helpers

Every comparison and calculation in the recurrence engine works on UTC
calendar days. These helpers strip time-of-day and timezone offsets.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone


def normalize_date(value: date | datetime) -> date:
    """
    Truncate a date or datetime to its UTC calendar day.

    - naive datetimes are taken to be UTC already
    - aware datetimes are converted to UTC before truncation
    - plain dates are returned as-is

    Example:
        >>> normalize_date(datetime(2024, 1, 10, 8, 45, 30))
        datetime.date(2024, 1, 10)
        >>> from datetime import timedelta
        >>> normalize_date(datetime(2024, 1, 10, 23, 30, tzinfo=timezone(timedelta(hours=-5))))
        datetime.date(2024, 1, 11)
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return date(value.year, value.month, value.day)


def utc_midnight(value: date | datetime) -> datetime:
    """Return the aware datetime at 00:00 UTC of ``value``'s UTC calendar day."""
    return datetime.combine(normalize_date(value), time.min, tzinfo=timezone.utc)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
