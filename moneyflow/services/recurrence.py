"""Recurrence calendar arithmetic.

``next_occurrence`` computes a single step of a series, ``advance_to_present``
catches a stale occurrence up to today without materializing anything, and
``iter_occurrences`` yields successive steps for previews.

All three are pure: inputs are normalized to UTC calendar days and an unknown
frequency yields ``None`` instead of raising, because persisted rows may carry
a frequency value that no longer exists.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Iterator

from ..models import RecurrenceFrequency
from ..utils.dates import normalize_date, utc_today

_FIXED_PERIOD_DAYS = {
    RecurrenceFrequency.DAILY: 1,
    RecurrenceFrequency.WEEKLY: 7,
}


def coerce_frequency(value: Any) -> RecurrenceFrequency | None:
    if isinstance(value, RecurrenceFrequency):
        return value
    try:
        return RecurrenceFrequency(value)
    except (ValueError, TypeError):
        return None


def _clamp_day(year: int, month: int, day: int) -> date:
    days_in_month = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, days_in_month))


def _step(frequency: RecurrenceFrequency, anchor: date, current: date) -> date:
    if frequency in _FIXED_PERIOD_DAYS:
        return current + timedelta(days=_FIXED_PERIOD_DAYS[frequency])

    if frequency == RecurrenceFrequency.MONTHLY:
        year, month = divmod(current.month, 12)
        # anchor day is re-applied every step so a clamp never sticks
        return _clamp_day(current.year + year, month + 1, anchor.day)

    # YEARLY: Feb 29 anchors land on Feb 28 in common years
    return _clamp_day(current.year + 1, anchor.month, anchor.day)


def next_occurrence(
    frequency: RecurrenceFrequency | str,
    start_date: date | datetime,
    current_occurrence: date | datetime,
) -> date | None:
    """Return the occurrence that follows ``current_occurrence``.

    ``start_date`` is the anchor of the series: MONTHLY keeps its day-of-month
    and YEARLY its month and day, clamped to the last valid day of the target
    month. Returns ``None`` for a frequency outside ``RecurrenceFrequency``.
    """
    freq = coerce_frequency(frequency)
    if freq is None:
        return None
    return _step(freq, normalize_date(start_date), normalize_date(current_occurrence))


def iter_occurrences(
    frequency: RecurrenceFrequency | str,
    start_date: date | datetime,
    current_occurrence: date | datetime,
) -> Iterator[date]:
    """Yield the occurrences after ``current_occurrence``, one step at a time.

    Unbounded; callers stop it with ``itertools.islice`` or a date check. An
    invalid frequency yields nothing.
    """
    freq = coerce_frequency(frequency)
    if freq is None:
        return
    anchor = normalize_date(start_date)
    current = normalize_date(current_occurrence)
    while True:
        current = _step(freq, anchor, current)
        yield current


def advance_to_present(
    frequency: RecurrenceFrequency | str,
    start_date: date | datetime,
    stored_occurrence: date | datetime,
    today: date | datetime | None = None,
) -> date | None:
    """Catch a stale stored occurrence up past ``today``.

    An occurrence on or after ``today`` is returned unchanged. Otherwise the
    series is stepped forward to the first occurrence strictly after
    ``today``: today's daily run has already gone by, so today's slot is
    forfeited along with the other skipped periods. Nothing is materialized.
    ``today`` defaults to the current UTC date.

    DAILY and WEEKLY jump over the day gap arithmetically; MONTHLY and YEARLY
    step through ``iter_occurrences`` so month-end and leap-day clamping is
    applied exactly as the materializer would have.
    """
    freq = coerce_frequency(frequency)
    if freq is None:
        return None

    current = normalize_date(stored_occurrence)
    target = normalize_date(today) if today is not None else utc_today()
    if current >= target:
        return current

    period = _FIXED_PERIOD_DAYS.get(freq)
    if period is not None:
        # lands on the last occurrence <= target, one more step passes it
        steps = (target - current).days // period
        current += timedelta(days=steps * period)
        return _step(freq, normalize_date(start_date), current)

    for candidate in iter_occurrences(freq, start_date, current):
        if candidate > target:
            return candidate
    return None  # pragma: no cover - iter_occurrences is unbounded
