"""Expansion of schedule-block requests into concrete occurrences."""

import calendar
from datetime import date, datetime, timedelta

from backend.scheduling.intervals import to_weekday_index

FREQUENCY_ONCE = 'once'
FREQUENCY_DAILY = 'daily'
FREQUENCY_WEEKLY = 'weekly'
FREQUENCY_MONTHLY = 'monthly'
FREQUENCY_CUSTOM_WEEKLY = 'custom_weekly'
FREQUENCIES = (
    FREQUENCY_ONCE,
    FREQUENCY_DAILY,
    FREQUENCY_WEEKLY,
    FREQUENCY_MONTHLY,
    FREQUENCY_CUSTOM_WEEKLY,
)

MAX_OCCURRENCES = 52
MAX_CUSTOM_WEEKLY_OCCURRENCES = 365


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _validate_weekday(value: int) -> int:
    if not 0 <= value <= 6:
        raise ValueError('Weekdays must be between 0 (Sunday) and 6 (Saturday).')
    return value


def expand_block_occurrences(
    start: datetime,
    end: datetime,
    frequency: str,
    weekday: int | None = None,
    selected_weekdays: list[int] | None = None,
    until: date | None = None,
) -> list[tuple[datetime, datetime]]:
    """
    Occurrences of a block as (start, end) pairs.

    Every occurrence keeps the first one's start time of day and length.
    ``until`` is inclusive; occurrences whose date falls after it are dropped.
    """
    if end <= start:
        raise ValueError('Block end must be after its start.')

    length = end - start

    if frequency == FREQUENCY_ONCE:
        return [(start, end)]

    def within_range(current: datetime) -> bool:
        return until is None or current.date() <= until

    occurrences: list[tuple[datetime, datetime]] = []

    if frequency == FREQUENCY_DAILY:
        current = start
        while len(occurrences) < MAX_OCCURRENCES and within_range(current):
            occurrences.append((current, current + length))
            current += timedelta(days=1)

    elif frequency == FREQUENCY_WEEKLY:
        current = start
        if weekday is not None:
            _validate_weekday(weekday)
            while to_weekday_index(current.date()) != weekday:
                current += timedelta(days=1)
        while len(occurrences) < MAX_OCCURRENCES and within_range(current):
            occurrences.append((current, current + length))
            current += timedelta(weeks=1)

    elif frequency == FREQUENCY_MONTHLY:
        for months in range(MAX_OCCURRENCES):
            current = add_months(start, months)
            if not within_range(current):
                break
            occurrences.append((current, current + length))

    elif frequency == FREQUENCY_CUSTOM_WEEKLY:
        if not selected_weekdays:
            raise ValueError('Select at least one weekday for a custom weekly block.')
        weekdays = {_validate_weekday(value) for value in selected_weekdays}
        current = start
        while len(occurrences) < MAX_CUSTOM_WEEKLY_OCCURRENCES and within_range(current):
            if to_weekday_index(current.date()) in weekdays:
                occurrences.append((current, current + length))
            current += timedelta(days=1)

    else:
        raise ValueError(f'Unknown block frequency: {frequency}')

    return occurrences
