"""Appointment model definitions."""

from sqlalchemy import CheckConstraint, Column, Integer, DateTime, ForeignKey, String
from backend.database import Base


ACTIVE_APPOINTMENT_STATUSES = ('pending', 'confirmed')
CANCELLED_STATUS = 'cancelled'
APPOINTMENT_STATUSES = ('pending', 'confirmed', 'completed', CANCELLED_STATUS, 'no_show')


class Appointment(Base):
    """Represents a scheduled appointment."""
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint(
            "status IN ({})".format(', '.join(f"'{value}'" for value in APPOINTMENT_STATUSES)),
            name='ck_appointments_status',
        ),
    )

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    staff_id = Column(Integer, nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"))
    customer_name = Column(String)
    customer_phone = Column(String)
    notes = Column(String)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default='pending')
    deleted_at = Column(DateTime, nullable=True)
