import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.database import get_db
from backend.models.appointment import ACTIVE_APPOINTMENT_STATUSES, CANCELLED_STATUS, Appointment
from backend.routes.common import database_unavailable, ensure_database_ready
from backend.scheduling.availability import find_available_staff, validate_candidate_slot
from backend.scheduling.errors import AvailabilityError, NotFoundError
from backend.scheduling.intervals import to_wall_clock, wall_clock_now
from backend.scheduling.stores import get_business, get_service_duration

router = APIRouter(tags=['appointments'])
logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
INITIAL_APPOINTMENT_STATUS = 'pending'


class CreateBookingRequest(BaseModel):
    business_id: int
    service_id: int
    staff_id: int | None = None
    start_time: datetime
    customer_name: str
    customer_phone: str
    notes: str | None = None

    @field_validator('customer_name')
    @classmethod
    def validate_customer_name(cls, value: str) -> str:
        normalized = ' '.join(value.split())
        if not normalized:
            raise ValueError('Customer name is required.')
        return normalized

    @field_validator('customer_phone')
    @classmethod
    def validate_customer_phone(cls, value: str) -> str:
        digits = ''.join(character for character in value if character.isdigit())
        if len(digits) < 8:
            raise ValueError('Customer phone must have at least 8 digits.')
        return digits

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class AppointmentResponse(BaseModel):
    id: int
    business_id: int
    staff_id: int
    service_id: int
    customer_name: str | None = None
    customer_phone: str | None = None
    start_time: datetime
    end_time: datetime
    status: str
    notes: str | None = None

    class Config:
        from_attributes = True


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_booking(data: CreateBookingRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        business = get_business(db, data.business_id)
        duration_minutes = get_service_duration(db, data.business_id, data.service_id)
        if not config.MIN_APPOINTMENT_DURATION <= duration_minutes <= config.MAX_APPOINTMENT_DURATION:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Service duration is outside the allowed range.',
            )

        now = wall_clock_now(business.timezone)
        start_time = to_wall_clock(data.start_time, business.timezone)
        if start_time.second or start_time.microsecond:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Start time must fall on a whole minute.',
            )

        staff_id = data.staff_id
        if staff_id is None:
            staff_id = find_available_staff(db, data.business_id, data.service_id, start_time, now=now)
            if staff_id is None:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail='No staff member is available at this time.',
                )

        # Re-checked here, right before the insert.
        validation = validate_candidate_slot(
            db, data.business_id, staff_id, data.service_id, start_time, now=now,
        )
        if not validation.available:
            logger.info(
                'Rejected booking for staff %s at %s: %s',
                staff_id,
                start_time.isoformat(),
                validation.reason,
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=validation.reason,
            )

        appointment = Appointment(
            business_id=data.business_id,
            staff_id=staff_id,
            service_id=data.service_id,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            notes=data.notes,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=duration_minutes),
            status=INITIAL_APPOINTMENT_STATUS,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        return appointment
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except AvailabilityError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    business_id: int = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.business_id == business_id,
            Appointment.deleted_at.is_(None),
        ).first()

        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        if appointment.status not in ACTIVE_APPOINTMENT_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Appointment is already {appointment.status}.',
            )

        appointment.status = CANCELLED_STATUS
        db.commit()
        db.refresh(appointment)

        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
