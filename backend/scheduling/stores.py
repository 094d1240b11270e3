"""Read-only queries the availability engine depends on.

Each function is a single round-trip against the booking database. Missing
rows that represent a real misconfiguration raise ``NotFoundError``; rows
that are legitimately absent (no schedule for a weekday) yield empty results.
"""

from datetime import datetime, time
from typing import NamedTuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.appointment import ACTIVE_APPOINTMENT_STATUSES, Appointment
from backend.models.business import Business, BusinessHours
from backend.models.schedule_block import ScheduleBlock
from backend.models.service import Service
from backend.models.staff import BusinessMember, StaffSchedule
from backend.scheduling.errors import (
    BusinessNotFoundError,
    InvalidServiceDurationError,
    ServiceNotFoundError,
)


class DayHours(NamedTuple):
    opening: time
    closing: time
    is_closed: bool


class WorkingInterval(NamedTuple):
    start: time
    end: time


def get_business(db: Session, business_id: int) -> Business:
    business = db.query(Business).filter(
        Business.id == business_id,
        Business.deleted_at.is_(None),
    ).first()

    if business is None:
        raise BusinessNotFoundError(business_id)

    return business


def get_service_duration(db: Session, business_id: int, service_id: int) -> int:
    service = db.query(Service.duration_minutes).filter(
        Service.id == service_id,
        Service.business_id == business_id,
    ).first()

    if service is None:
        raise ServiceNotFoundError(service_id)

    duration_minutes = service.duration_minutes
    if not duration_minutes or duration_minutes <= 0:
        raise InvalidServiceDurationError(service_id, duration_minutes)

    return duration_minutes


def get_business_hours_for_day(db: Session, business: Business, weekday: int) -> DayHours:
    opening = business.default_opening_time or config.DEFAULT_OPENING_TIME
    closing = business.default_closing_time or config.DEFAULT_CLOSING_TIME

    if not business.custom_hours_enabled:
        return DayHours(opening, closing, False)

    custom = db.query(BusinessHours).filter(
        BusinessHours.business_id == business.id,
        BusinessHours.day_of_week == weekday,
    ).first()

    if custom is None:
        return DayHours(opening, closing, False)

    return DayHours(
        custom.opening_time or opening,
        custom.closing_time or closing,
        bool(custom.is_closed),
    )


def get_staff_schedule_for_day(
    db: Session,
    business_id: int,
    staff_id: int,
    weekday: int,
) -> list[WorkingInterval]:
    rows = db.query(StaffSchedule.start_time, StaffSchedule.end_time).filter(
        StaffSchedule.staff_id == staff_id,
        StaffSchedule.business_id == business_id,
        StaffSchedule.day_of_week == weekday,
        StaffSchedule.active.is_(True),
    ).order_by(StaffSchedule.start_time.asc()).all()

    return [WorkingInterval(start, end) for start, end in rows]


def get_overlapping_appointments(
    db: Session,
    business_id: int,
    staff_id: int,
    range_start: datetime,
    range_end: datetime,
    exclude_appointment_id: int | None = None,
) -> list[tuple[datetime, datetime]]:
    query = db.query(Appointment.start_time, Appointment.end_time).filter(
        Appointment.business_id == business_id,
        Appointment.staff_id == staff_id,
        Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
        Appointment.deleted_at.is_(None),
        Appointment.start_time < range_end,
        Appointment.end_time > range_start,
    )

    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return [(start, end) for start, end in query.all()]


def get_overlapping_blocks(
    db: Session,
    business_id: int,
    staff_id: int,
    range_start: datetime,
    range_end: datetime,
) -> list[tuple[datetime, datetime]]:
    rows = db.query(ScheduleBlock.start_time, ScheduleBlock.end_time).filter(
        ScheduleBlock.business_id == business_id,
        ScheduleBlock.active.is_(True),
        or_(ScheduleBlock.staff_id == staff_id, ScheduleBlock.applies_to_all.is_(True)),
        ScheduleBlock.start_time < range_end,
        ScheduleBlock.end_time > range_start,
    ).all()

    return [(start, end) for start, end in rows]


def list_active_staff_ids(db: Session, business_id: int) -> list[int]:
    rows = db.query(BusinessMember.user_id).filter(
        BusinessMember.business_id == business_id,
        BusinessMember.active.is_(True),
    ).order_by(BusinessMember.id.asc()).all()

    return [user_id for (user_id,) in rows]
