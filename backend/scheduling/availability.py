"""Availability engine.

Computes the bookable slots of a day for one staff member or for any staff
member, and re-validates a single slot right before an appointment is
written. Callers pass ``now`` explicitly; when omitted it is read from the
business's timezone.

The ``compute_*``/``validate_candidate_slot``/``find_available_staff``
functions raise on store failures. The ``get_*``/``validate_time_slot``
entry points never raise and return tagged results instead.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from backend.core import config
from backend.scheduling.errors import AvailabilityError
from backend.scheduling.intervals import (
    day_bounds,
    effective_window,
    fits_within,
    format_slot_time,
    intervals_overlap,
    iterate_slot_starts,
    to_wall_clock,
    to_weekday_index,
    wall_clock_now,
)
from backend.scheduling.schemas import SlotsError, SlotsFound, SlotsResult, SlotValidation, TimeSlot
from backend.scheduling.stores import (
    get_business,
    get_business_hours_for_day,
    get_overlapping_appointments,
    get_overlapping_blocks,
    get_service_duration,
    get_staff_schedule_for_day,
    list_active_staff_ids,
)

logger = logging.getLogger(__name__)

REASON_TIME_PASSED = 'time already passed'
REASON_RESERVED = 'slot already reserved'
REASON_BUSINESS_CLOSED = 'business closed this day'
REASON_OUTSIDE_BUSINESS_HOURS = 'outside business hours'
REASON_OUTSIDE_STAFF_DAY = "outside staff's working day"
REASON_OUTSIDE_STAFF_HOURS = "outside staff's hours"
REASON_BLOCKED = 'time is blocked'
REASON_VALIDATION_FAILED = 'could not validate time slot'

ERROR_INVALID_DATE = 'Invalid date.'
ERROR_INVALID_START_TIME = 'Invalid start time.'
ERROR_AVAILABILITY_FAILED = 'Could not compute availability.'


def _working_windows(
    db: Session,
    business,
    staff_id: int,
    target_date: date,
) -> list[tuple[datetime, datetime]]:
    weekday = to_weekday_index(target_date)
    hours = get_business_hours_for_day(db, business, weekday)
    if hours.is_closed:
        return []

    windows = []
    for interval in get_staff_schedule_for_day(db, business.id, staff_id, weekday):
        window = effective_window(hours.opening, hours.closing, interval.start, interval.end)
        if window is None:
            continue
        window_start, window_end = window
        windows.append((
            datetime.combine(target_date, window_start),
            datetime.combine(target_date, window_end),
        ))

    return windows


def compute_day_slots(
    db: Session,
    business_id: int,
    service_id: int,
    staff_id: int,
    target_date: date,
    now: datetime | None = None,
    exclude_appointment_id: int | None = None,
    increment_minutes: int = config.SLOT_INCREMENT_MINUTES,
) -> list[TimeSlot]:
    """
    Slots of one staff member for one day, ordered by time.

    A closed business day and a staff member without a schedule both give an
    empty list. Slots that would run past the effective closing time are not
    emitted at all; the rest are marked unavailable when they overlap an
    active appointment or block, or when they do not start after ``now``.
    """
    duration_minutes = get_service_duration(db, business_id, service_id)
    business = get_business(db, business_id)
    if now is None:
        now = wall_clock_now(business.timezone)
    else:
        now = to_wall_clock(now, business.timezone)

    windows = _working_windows(db, business, staff_id, target_date)
    if not windows:
        return []

    day_start, day_end = day_bounds(target_date)
    busy = get_overlapping_appointments(
        db, business_id, staff_id, day_start, day_end, exclude_appointment_id,
    )
    busy += get_overlapping_blocks(db, business_id, staff_id, day_start, day_end)

    duration = timedelta(minutes=duration_minutes)
    slots: dict[str, TimeSlot] = {}

    for window_start, window_end in windows:
        for slot_start in iterate_slot_starts(window_start, window_end, duration_minutes, increment_minutes):
            label = format_slot_time(slot_start)
            if label in slots:
                continue

            slot_end = slot_start + duration
            has_conflict = any(
                intervals_overlap(slot_start, slot_end, busy_start, busy_end)
                for busy_start, busy_end in busy
            )
            slots[label] = TimeSlot(
                time=label,
                datetime=slot_start.isoformat(timespec='seconds'),
                available=not has_conflict and slot_start > now,
            )

    return sorted(slots.values(), key=lambda slot: slot.time)


def merge_staff_slots(per_staff_slots: Iterable[list[TimeSlot]]) -> list[TimeSlot]:
    """A time is available when at least one staff member has it available."""
    merged: dict[str, TimeSlot] = {}

    for slots in per_staff_slots:
        for slot in slots:
            existing = merged.get(slot.time)
            if existing is None or not existing.available:
                merged[slot.time] = slot

    return sorted(merged.values(), key=lambda slot: slot.time)


def compute_day_slots_any_staff(
    session_factory: sessionmaker,
    business_id: int,
    service_id: int,
    target_date: date,
    now: datetime | None = None,
    max_workers: int = config.ANY_STAFF_MAX_WORKERS,
) -> list[TimeSlot]:
    """
    Merged slots over every active staff member of the business.

    Each staff member is computed in its own worker with its own session.
    A staff member whose computation fails is logged and left out, which can
    only hide availability, never invent it.
    """
    with session_factory() as db:
        get_service_duration(db, business_id, service_id)
        business = get_business(db, business_id)
        staff_ids = list_active_staff_ids(db, business_id)
        if now is None:
            now = wall_clock_now(business.timezone)
        else:
            now = to_wall_clock(now, business.timezone)

    if not staff_ids:
        return []

    def staff_slots(staff_id: int) -> list[TimeSlot]:
        with session_factory() as staff_db:
            return compute_day_slots(staff_db, business_id, service_id, staff_id, target_date, now=now)

    per_staff_slots = []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(staff_ids)))) as executor:
        futures = [(staff_id, executor.submit(staff_slots, staff_id)) for staff_id in staff_ids]
        for staff_id, future in futures:
            try:
                per_staff_slots.append(future.result())
            except (AvailabilityError, SQLAlchemyError):
                logger.exception(
                    'Skipping staff %s while merging availability for business %s',
                    staff_id,
                    business_id,
                )

    return merge_staff_slots(per_staff_slots)


def validate_candidate_slot(
    db: Session,
    business_id: int,
    staff_id: int,
    service_id: int,
    start_time: datetime,
    now: datetime | None = None,
    exclude_appointment_id: int | None = None,
) -> SlotValidation:
    """
    Re-check one slot right before it is booked.

    Checks run in order and stop at the first failure: start in the future,
    no conflicting appointment, business open that day, inside business
    hours, inside the staff member's hours, not blocked.
    """
    duration_minutes = get_service_duration(db, business_id, service_id)
    business = get_business(db, business_id)
    if now is None:
        now = wall_clock_now(business.timezone)
    else:
        now = to_wall_clock(now, business.timezone)

    start_time = to_wall_clock(start_time, business.timezone)
    end_time = start_time + timedelta(minutes=duration_minutes)

    if start_time <= now:
        return SlotValidation.rejected(REASON_TIME_PASSED)

    conflicts = get_overlapping_appointments(
        db, business_id, staff_id, start_time, end_time, exclude_appointment_id,
    )
    if conflicts:
        return SlotValidation.rejected(REASON_RESERVED)

    slot_date = start_time.date()
    weekday = to_weekday_index(slot_date)
    hours = get_business_hours_for_day(db, business, weekday)
    if hours.is_closed:
        return SlotValidation.rejected(REASON_BUSINESS_CLOSED)

    if not fits_within(
        start_time,
        end_time,
        datetime.combine(slot_date, hours.opening),
        datetime.combine(slot_date, hours.closing),
    ):
        return SlotValidation.rejected(REASON_OUTSIDE_BUSINESS_HOURS)

    schedule = get_staff_schedule_for_day(db, business_id, staff_id, weekday)
    if not schedule:
        return SlotValidation.rejected(REASON_OUTSIDE_STAFF_DAY)

    if not any(
        fits_within(
            start_time,
            end_time,
            datetime.combine(slot_date, interval.start),
            datetime.combine(slot_date, interval.end),
        )
        for interval in schedule
    ):
        return SlotValidation.rejected(REASON_OUTSIDE_STAFF_HOURS)

    if get_overlapping_blocks(db, business_id, staff_id, start_time, end_time):
        return SlotValidation.rejected(REASON_BLOCKED)

    return SlotValidation.accepted()


def find_available_staff(
    db: Session,
    business_id: int,
    service_id: int,
    start_time: datetime,
    now: datetime | None = None,
) -> int | None:
    """First active staff member, in membership order, for whom the slot validates."""
    for staff_id in list_active_staff_ids(db, business_id):
        validation = validate_candidate_slot(db, business_id, staff_id, service_id, start_time, now=now)
        if validation.available:
            return staff_id

    return None


def _parse_date(value: date | str) -> date:
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def get_available_slots(
    db: Session,
    business_id: int,
    service_id: int,
    staff_id: int,
    target_date: date | str,
    now: datetime | None = None,
    exclude_appointment_id: int | None = None,
) -> SlotsResult:
    try:
        target_date = _parse_date(target_date)
    except ValueError:
        return SlotsError(error=ERROR_INVALID_DATE)

    try:
        slots = compute_day_slots(
            db,
            business_id,
            service_id,
            staff_id,
            target_date,
            now=now,
            exclude_appointment_id=exclude_appointment_id,
        )
    except AvailabilityError as exc:
        return SlotsError(error=str(exc))
    except SQLAlchemyError:
        logger.exception('Error calculating availability for staff %s', staff_id)
        return SlotsError(error=ERROR_AVAILABILITY_FAILED)

    return SlotsFound(data=slots)


def get_available_slots_any_staff(
    session_factory: sessionmaker,
    business_id: int,
    service_id: int,
    target_date: date | str,
    now: datetime | None = None,
) -> SlotsResult:
    try:
        target_date = _parse_date(target_date)
    except ValueError:
        return SlotsError(error=ERROR_INVALID_DATE)

    try:
        slots = compute_day_slots_any_staff(session_factory, business_id, service_id, target_date, now=now)
    except AvailabilityError as exc:
        return SlotsError(error=str(exc))
    except SQLAlchemyError:
        logger.exception('Error calculating availability for any staff of business %s', business_id)
        return SlotsError(error=ERROR_AVAILABILITY_FAILED)

    return SlotsFound(data=slots)


def validate_time_slot(
    db: Session,
    business_id: int,
    staff_id: int,
    service_id: int,
    start_time: datetime | str,
    now: datetime | None = None,
    exclude_appointment_id: int | None = None,
) -> SlotValidation:
    try:
        if isinstance(start_time, str):
            start_time = datetime.fromisoformat(start_time)
    except ValueError:
        return SlotValidation.failed(ERROR_INVALID_START_TIME)

    try:
        return validate_candidate_slot(
            db,
            business_id,
            staff_id,
            service_id,
            start_time,
            now=now,
            exclude_appointment_id=exclude_appointment_id,
        )
    except AvailabilityError as exc:
        return SlotValidation.failed(str(exc))
    except SQLAlchemyError:
        logger.exception('Error validating time slot for staff %s', staff_id)
        return SlotValidation.failed(REASON_VALIDATION_FAILED)
