"""Schedule block model definitions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from backend.database import Base


class ScheduleBlock(Base):
    """Time during which one staff member, or everyone, cannot be booked."""
    __tablename__ = "schedule_blocks"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    staff_id = Column(Integer, nullable=True)
    applies_to_all = Column(Boolean, default=False)
    reason = Column(String)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_recurring = Column(Boolean, default=False)
    recurrence_pattern = Column(String, nullable=True)
    series_id = Column(String, nullable=True)
    active = Column(Boolean, default=True)
