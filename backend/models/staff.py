"""Staff membership and weekly schedule model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Time
from backend.database import Base


class BusinessMember(Base):
    """Links a user to a business as admin or staff."""
    __tablename__ = "business_members"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    user_id = Column(Integer, nullable=False, index=True)
    role = Column(String, default="staff")  # admin/staff
    active = Column(Boolean, default=True)


class StaffSchedule(Base):
    """A weekly working interval for one staff member."""
    __tablename__ = "staff_schedules"

    id = Column(Integer, primary_key=True)
    staff_id = Column(Integer, nullable=False)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday..6=Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    active = Column(Boolean, default=True)
