import logging
import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.models.schedule_block import ScheduleBlock
from backend.routes.common import database_unavailable, ensure_database_ready
from backend.scheduling.errors import NotFoundError
from backend.scheduling.recurrence import FREQUENCIES, FREQUENCY_ONCE, expand_block_occurrences
from backend.scheduling.stores import get_business

router = APIRouter(tags=['schedule-blocks'])
logger = logging.getLogger(__name__)


class CreateBlockRequest(BaseModel):
    business_id: int
    staff_id: int | None = None
    applies_to_all: bool = False
    reason: str | None = None
    start_time: datetime
    end_time: datetime
    frequency: str = FREQUENCY_ONCE
    weekday: int | None = None
    selected_weekdays: list[int] | None = None
    end_date: date | None = None

    @field_validator('frequency')
    @classmethod
    def validate_frequency(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in FREQUENCIES:
            raise ValueError('Invalid block frequency.')
        return normalized

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class UpdateBlockRequest(BaseModel):
    staff_id: int | None = None
    applies_to_all: bool | None = None
    reason: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class CreateBlockResponse(BaseModel):
    count: int
    series_id: str | None = None


class BlockResponse(BaseModel):
    id: int
    business_id: int
    staff_id: int | None = None
    applies_to_all: bool
    reason: str | None = None
    start_time: datetime
    end_time: datetime
    is_recurring: bool
    recurrence_pattern: str | None = None
    series_id: str | None = None

    class Config:
        from_attributes = True


@router.post('', response_model=CreateBlockResponse, status_code=status.HTTP_201_CREATED)
def create_blocks(data: CreateBlockRequest, db: Session = Depends(get_db)):
    if not data.applies_to_all and data.staff_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='A block needs a staff member unless it applies to everyone.',
        )

    try:
        occurrences = expand_block_occurrences(
            data.start_time,
            data.end_time,
            data.frequency,
            weekday=data.weekday,
            selected_weekdays=data.selected_weekdays,
            until=data.end_date,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    ensure_database_ready()

    is_recurring = data.frequency != FREQUENCY_ONCE
    series_id = str(uuid.uuid4()) if is_recurring else None
    staff_id = None if data.applies_to_all else data.staff_id

    try:
        get_business(db, data.business_id)

        db.add_all([
            ScheduleBlock(
                business_id=data.business_id,
                staff_id=staff_id,
                applies_to_all=data.applies_to_all,
                reason=data.reason,
                start_time=occurrence_start,
                end_time=occurrence_end,
                is_recurring=is_recurring,
                recurrence_pattern=data.frequency if is_recurring else None,
                series_id=series_id,
                active=True,
            )
            for occurrence_start, occurrence_end in occurrences
        ])
        db.commit()
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    logger.info('Created %s schedule block(s) for business %s', len(occurrences), data.business_id)
    return CreateBlockResponse(count=len(occurrences), series_id=series_id)


@router.get('', response_model=list[BlockResponse])
def list_blocks(
    business_id: int = Query(...),
    staff_id: int | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(ScheduleBlock).filter(
            ScheduleBlock.business_id == business_id,
            ScheduleBlock.active.is_(True),
        )

        if staff_id is not None:
            query = query.filter(
                or_(ScheduleBlock.staff_id == staff_id, ScheduleBlock.applies_to_all.is_(True))
            )
        if start_date is not None:
            query = query.filter(ScheduleBlock.end_time > datetime.combine(start_date, datetime.min.time()))
        if end_date is not None:
            query = query.filter(ScheduleBlock.start_time <= datetime.combine(end_date, datetime.max.time()))

        return query.order_by(ScheduleBlock.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.patch('/{block_id}', response_model=BlockResponse)
def update_block(
    block_id: int,
    data: UpdateBlockRequest,
    business_id: int = Query(...),
    db: Session = Depends(get_db),
):
    """Edit one occurrence in place; the rest of its series is left as it was."""
    ensure_database_ready()

    try:
        block = db.query(ScheduleBlock).filter(
            ScheduleBlock.id == block_id,
            ScheduleBlock.business_id == business_id,
            ScheduleBlock.active.is_(True),
        ).first()

        if not block:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Block not found.',
            )

        changes = data.model_dump(exclude_unset=True)
        start_time = changes.get('start_time') or block.start_time
        end_time = changes.get('end_time') or block.end_time
        if end_time <= start_time:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Block end must be after its start.',
            )

        applies_to_all = block.applies_to_all
        if changes.get('applies_to_all') is not None:
            applies_to_all = changes['applies_to_all']
        staff_id = changes['staff_id'] if 'staff_id' in changes else block.staff_id
        if applies_to_all:
            staff_id = None
        elif staff_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='A block needs a staff member unless it applies to everyone.',
            )

        block.start_time = start_time
        block.end_time = end_time
        block.applies_to_all = applies_to_all
        block.staff_id = staff_id
        if 'reason' in changes:
            block.reason = changes['reason']

        db.commit()
        db.refresh(block)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    logger.info('Updated schedule block %s for business %s', block_id, business_id)
    return block


@router.delete('/series/{series_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_block_series(
    series_id: str,
    business_id: int = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        blocks = db.query(ScheduleBlock).filter(
            ScheduleBlock.series_id == series_id,
            ScheduleBlock.business_id == business_id,
            ScheduleBlock.active.is_(True),
        ).all()

        if not blocks:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Block series not found.',
            )

        for block in blocks:
            block.active = False
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{block_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_block(
    block_id: int,
    business_id: int = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        block = db.query(ScheduleBlock).filter(
            ScheduleBlock.id == block_id,
            ScheduleBlock.business_id == business_id,
            ScheduleBlock.active.is_(True),
        ).first()

        if not block:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Block not found.',
            )

        block.active = False
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
