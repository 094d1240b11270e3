"""Time arithmetic shared by slot generation and validation.

All datetimes handled here are naive wall-clock times in the business's
timezone. Intervals are half-open: [start, end).
"""

import logging
from datetime import date, datetime, time, timedelta

import pytz

from backend.core import config

logger = logging.getLogger(__name__)


def to_weekday_index(day: date) -> int:
    """Weekday with 0=Sunday..6=Saturday."""
    return (day.weekday() + 1) % 7


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def fits_within(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> bool:
    return window_start <= start and end <= window_end


def day_bounds(day: date) -> tuple[datetime, datetime]:
    day_start = datetime.combine(day, time.min)
    return day_start, day_start + timedelta(days=1)


def effective_window(
    business_open: time,
    business_close: time,
    staff_start: time,
    staff_end: time,
) -> tuple[time, time] | None:
    start = max(business_open, staff_start)
    end = min(business_close, staff_end)
    if start >= end:
        return None
    return start, end


def iterate_slot_starts(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    increment_minutes: int = config.SLOT_INCREMENT_MINUTES,
) -> list[datetime]:
    """Start times inside the window where the whole service still fits."""
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=increment_minutes)
    starts: list[datetime] = []
    current = window_start

    while current + duration <= window_end:
        starts.append(current)
        current += step

    return starts


def format_slot_time(value: datetime) -> str:
    return value.strftime('%H:%M')


def resolve_timezone(tz_name: str | None):
    try:
        return pytz.timezone(tz_name or config.DEFAULT_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        logger.warning("Invalid timezone '%s', using %s", tz_name, config.DEFAULT_TIMEZONE)
        return pytz.timezone(config.DEFAULT_TIMEZONE)


def wall_clock_now(tz_name: str | None) -> datetime:
    return datetime.now(resolve_timezone(tz_name)).replace(tzinfo=None)


def to_wall_clock(value: datetime, tz_name: str | None) -> datetime:
    """Convert an aware datetime to the business's wall clock; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(resolve_timezone(tz_name)).replace(tzinfo=None)
