from datetime import datetime

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backend.models.appointment import Appointment
from backend.models.service import Service
from backend.routes.appointment_routes import CreateBookingRequest, cancel_appointment, create_booking
from backend.scheduling.availability import REASON_RESERVED, validate_candidate_slot


@pytest.fixture(autouse=True)
def skip_index_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('backend.routes.appointment_routes.ensure_database_ready', lambda: None)


def booking(**overrides) -> CreateBookingRequest:
    fields = {
        'business_id': 1,
        'service_id': 1,
        'staff_id': 10,
        'start_time': datetime(2030, 1, 7, 10, 0),
        'customer_name': 'Maria Souza',
        'customer_phone': '(11) 98765-4321',
    }
    fields.update(overrides)
    return CreateBookingRequest(**fields)


def test_create_booking_request_normalizes_customer_fields() -> None:
    request = booking(customer_name='  Maria   Souza ', notes='   ')

    assert request.customer_name == 'Maria Souza'
    assert request.customer_phone == '11987654321'
    assert request.notes is None


@pytest.mark.parametrize(
    'overrides',
    [
        {'customer_name': '   '},
        {'customer_phone': '123'},
        {'notes': 'x' * 601},
    ],
)
def test_create_booking_request_rejects_invalid_fields(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        booking(**overrides)


def test_create_booking_inserts_pending_appointment(db, seed_salon) -> None:
    seed_salon(db)

    appointment = create_booking(booking(), db=db)

    assert appointment.id is not None
    assert appointment.staff_id == 10
    assert appointment.status == 'pending'
    assert appointment.start_time == datetime(2030, 1, 7, 10, 0)
    assert appointment.end_time == datetime(2030, 1, 7, 11, 0)


def test_create_booking_rejects_slot_taken_since_it_was_shown(db, seed_salon, add_appointment) -> None:
    seed_salon(db)
    add_appointment(db, 10, datetime(2030, 1, 7, 9, 30), datetime(2030, 1, 7, 10, 30), status='pending')

    with pytest.raises(HTTPException) as exception_info:
        create_booking(booking(), db=db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == REASON_RESERVED
    assert db.query(Appointment).count() == 1


def test_create_booking_picks_first_free_staff_when_none_chosen(db, seed_salon, add_appointment) -> None:
    seed_salon(db)
    add_appointment(db, 10, datetime(2030, 1, 7, 14, 0), datetime(2030, 1, 7, 15, 0))

    appointment = create_booking(booking(staff_id=None, start_time=datetime(2030, 1, 7, 14, 0)), db=db)

    assert appointment.staff_id == 20


def test_create_booking_without_free_staff_is_a_conflict(db, seed_salon, add_appointment) -> None:
    seed_salon(db)
    add_appointment(db, 10, datetime(2030, 1, 7, 10, 0), datetime(2030, 1, 7, 11, 0))

    with pytest.raises(HTTPException) as exception_info:
        create_booking(booking(staff_id=None), db=db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'No staff member is available at this time.'


def test_create_booking_returns_not_found_for_unknown_business(db, seed_salon) -> None:
    seed_salon(db)

    with pytest.raises(HTTPException) as exception_info:
        create_booking(booking(business_id=7), db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Business not found.'


def test_create_booking_returns_not_found_for_unknown_service(db, seed_salon) -> None:
    seed_salon(db)

    with pytest.raises(HTTPException) as exception_info:
        create_booking(booking(service_id=99), db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Service not found.'


def test_create_booking_rejects_service_longer_than_allowed(db, seed_salon) -> None:
    seed_salon(db)
    db.add(Service(id=5, business_id=1, name='Full day spa', duration_minutes=600))
    db.commit()

    with pytest.raises(HTTPException) as exception_info:
        create_booking(booking(service_id=5), db=db)

    assert exception_info.value.status_code == 400


def test_cancel_appointment_reopens_the_slot(db, seed_salon) -> None:
    seed_salon(db)
    appointment = create_booking(booking(), db=db)

    cancelled = cancel_appointment(appointment_id=appointment.id, business_id=1, db=db)

    assert cancelled.status == 'cancelled'
    result = validate_candidate_slot(db, 1, 10, 1, datetime(2030, 1, 7, 10, 0))
    assert result.available is True


def test_cancel_appointment_rejects_already_cancelled(db, seed_salon, add_appointment) -> None:
    seed_salon(db)
    appointment = add_appointment(db, 10, datetime(2030, 1, 7, 9, 0), datetime(2030, 1, 7, 10, 0), status='cancelled')

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment_id=appointment.id, business_id=1, db=db)

    assert exception_info.value.status_code == 409


def test_cancel_appointment_returns_not_found_when_missing(db, seed_salon) -> None:
    seed_salon(db)

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment_id=999, business_id=1, db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Appointment not found.'


def test_create_booking_rejects_start_time_off_the_minute(db, seed_salon) -> None:
    seed_salon(db)

    with pytest.raises(HTTPException) as exception_info:
        create_booking(booking(start_time=datetime(2030, 1, 7, 10, 7, 30)), db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Start time must fall on a whole minute.'
    assert db.query(Appointment).count() == 0
