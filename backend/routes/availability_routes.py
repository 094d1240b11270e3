from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session, sessionmaker

from backend.database import get_db, get_session_factory
from backend.scheduling.availability import (
    get_available_slots,
    get_available_slots_any_staff,
    validate_time_slot,
)
from backend.scheduling.schemas import SlotsError, SlotsFound, SlotValidation

router = APIRouter(tags=['availability'])


class ValidateSlotRequest(BaseModel):
    business_id: int
    staff_id: int
    service_id: int
    start_time: datetime
    exclude_appointment_id: int | None = None


@router.get('/slots', response_model=SlotsFound | SlotsError)
def list_available_slots(
    business_id: int = Query(...),
    service_id: int = Query(...),
    staff_id: int = Query(...),
    slot_date: date = Query(..., alias='date'),
    exclude_appointment_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return get_available_slots(
        db,
        business_id,
        service_id,
        staff_id,
        slot_date,
        exclude_appointment_id=exclude_appointment_id,
    )


@router.get('/slots/any-staff', response_model=SlotsFound | SlotsError)
def list_available_slots_any_staff(
    business_id: int = Query(...),
    service_id: int = Query(...),
    slot_date: date = Query(..., alias='date'),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    return get_available_slots_any_staff(session_factory, business_id, service_id, slot_date)


@router.post('/validate', response_model=SlotValidation)
def validate_slot(data: ValidateSlotRequest, db: Session = Depends(get_db)):
    return validate_time_slot(
        db,
        data.business_id,
        data.staff_id,
        data.service_id,
        data.start_time,
        exclude_appointment_id=data.exclude_appointment_id,
    )
