"""Business and opening-hours model definitions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Time, UniqueConstraint

from backend.core import config
from backend.database import Base


class Business(Base):
    """A tenant offering bookable services."""
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True)
    timezone = Column(String, default=config.DEFAULT_TIMEZONE)
    default_opening_time = Column(Time, default=config.DEFAULT_OPENING_TIME)
    default_closing_time = Column(Time, default=config.DEFAULT_CLOSING_TIME)
    custom_hours_enabled = Column(Boolean, default=False)
    active = Column(Boolean, default=True)
    deleted_at = Column(DateTime, nullable=True)


class BusinessHours(Base):
    """Per-weekday opening hours, used when custom hours are enabled."""
    __tablename__ = "business_hours"
    __table_args__ = (UniqueConstraint("business_id", "day_of_week"),)

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday..6=Saturday
    opening_time = Column(Time)
    closing_time = Column(Time)
    is_closed = Column(Boolean, default=False)
