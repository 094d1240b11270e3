import os
from datetime import time
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.business import Business, BusinessHours  # noqa: E402
from backend.models.schedule_block import ScheduleBlock  # noqa: E402
from backend.models.service import Service  # noqa: E402
from backend.models.staff import BusinessMember, StaffSchedule  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    # A file database, so each worker thread gets its own connection.
    engine = create_engine(
        f"sqlite:///{tmp_path / 'booking.db'}",
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def seed_salon():
    """
    Studio Bela: closed on Sundays, 09:00-18:00 on Mondays, 09:00-13:00 on
    Saturdays, default hours otherwise. Ana (10) works Monday 09:00-17:00,
    Saturday 10:00-16:00 and, uselessly, Sunday. Bruno (20) works Monday
    13:00-18:00. Carla (30) is an inactive member scheduled all Monday.
    """

    def seed(session):
        session.add_all([
            Business(
                id=1,
                name='Studio Bela',
                slug='studio-bela',
                timezone='America/Sao_Paulo',
                default_opening_time=time(9, 0),
                default_closing_time=time(18, 0),
                custom_hours_enabled=True,
            ),
            BusinessHours(business_id=1, day_of_week=0, is_closed=True),
            BusinessHours(business_id=1, day_of_week=1, opening_time=time(9, 0), closing_time=time(18, 0)),
            BusinessHours(business_id=1, day_of_week=6, opening_time=time(9, 0), closing_time=time(13, 0)),
            Service(id=1, business_id=1, name='Haircut', duration_minutes=60),
            Service(id=2, business_id=1, name='Manicure', duration_minutes=30),
            BusinessMember(id=1, business_id=1, user_id=10, role='admin', active=True),
            BusinessMember(id=2, business_id=1, user_id=20, role='staff', active=True),
            BusinessMember(id=3, business_id=1, user_id=30, role='staff', active=False),
            StaffSchedule(staff_id=10, business_id=1, day_of_week=1, start_time=time(9, 0), end_time=time(17, 0)),
            StaffSchedule(staff_id=10, business_id=1, day_of_week=6, start_time=time(10, 0), end_time=time(16, 0)),
            StaffSchedule(staff_id=10, business_id=1, day_of_week=0, start_time=time(9, 0), end_time=time(17, 0)),
            StaffSchedule(staff_id=20, business_id=1, day_of_week=1, start_time=time(13, 0), end_time=time(18, 0)),
            StaffSchedule(staff_id=30, business_id=1, day_of_week=1, start_time=time(9, 0), end_time=time(18, 0)),
        ])
        session.commit()
        return SimpleNamespace(business_id=1, haircut_id=1, manicure_id=2, ana=10, bruno=20, carla=30)

    return seed


@pytest.fixture
def add_appointment():
    def add(session, staff_id, start, end, status='confirmed', deleted_at=None, business_id=1, service_id=1):
        appointment = Appointment(
            business_id=business_id,
            staff_id=staff_id,
            service_id=service_id,
            customer_name='Maria Souza',
            customer_phone='11987654321',
            start_time=start,
            end_time=end,
            status=status,
            deleted_at=deleted_at,
        )
        session.add(appointment)
        session.commit()
        session.refresh(appointment)
        return appointment

    return add


@pytest.fixture
def add_block():
    def add(session, start, end, staff_id=None, applies_to_all=False, active=True, business_id=1):
        block = ScheduleBlock(
            business_id=business_id,
            staff_id=staff_id,
            applies_to_all=applies_to_all,
            reason='Lunch',
            start_time=start,
            end_time=end,
            active=active,
        )
        session.add(block)
        session.commit()
        session.refresh(block)
        return block

    return add
