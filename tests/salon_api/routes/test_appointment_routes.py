from datetime import date, datetime, time
from decimal import Decimal

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from salon_api.models.appointment import Appointment
from salon_api.models.service import Service
from salon_api.models.user import User
from salon_api.routes.appointment_routes import (
    CreateAppointmentRequest,
    ExternalClientInfo,
    UpdateAppointmentRequest,
    create_appointment,
    delete_appointment,
    list_appointments_for_date,
    update_appointment,
)
from salon_api.scheduling.working_hours import get_default_schedule
from salon_api.services import schedule_service

TODAY = date(2026, 1, 2)
NOW = datetime(2026, 1, 2, 9, 0)
MONDAY = date(2026, 1, 5)


@pytest.fixture
def salon(db, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('salon_api.routes.appointment_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('salon_api.routes.appointment_routes.booking_now', lambda: NOW)
    monkeypatch.setattr('salon_api.routes.appointment_routes.booking_today', lambda: TODAY)

    practitioner = User(email='nandi@salon.example', first_name='Nandi', role='practitioner', is_practitioner=True)
    client = User(email='client@example.com', first_name='Lerato', role='client')
    other_client = User(email='other@example.com', first_name='Sipho', role='client')
    cut = Service(name='Cut', duration_minutes=60, price=Decimal('300.00'))
    fringe = Service(name='Fringe trim', duration_minutes=15, price=Decimal('80.00'))
    consultation = Service(name='Consultation', duration_minutes=0, price=None)
    db.add_all([practitioner, client, other_client, cut, fringe, consultation])
    db.commit()
    schedule_service.save_practitioner_schedule(db, practitioner.id, get_default_schedule())

    return {
        'db': db,
        'practitioner': practitioner,
        'client': client,
        'other_client': other_client,
        'cut': cut,
        'fringe': fringe,
        'consultation': consultation,
    }


def _book(salon, user: User | None = None, **overrides):
    values = {
        'service_ids': [salon['cut'].id],
        'appointment_date': MONDAY,
        'start_time': time(10, 0),
        'practitioner_id': salon['practitioner'].id,
    }
    values.update(overrides)
    return create_appointment(
        data=CreateAppointmentRequest(**values),
        current_user=user or salon['client'],
        db=salon['db'],
    )


def test_create_appointment_request_requires_a_service() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(service_ids=[], appointment_date=MONDAY, start_time=time(10, 0))


def test_create_appointment_request_normalizes_notes_and_duplicates() -> None:
    request = CreateAppointmentRequest(
        service_ids=[2, 1, 2],
        appointment_date=MONDAY,
        start_time=time(10, 0),
        notes='   ',
    )

    assert request.service_ids == [2, 1]
    assert request.notes is None


def test_client_books_available_slot(salon) -> None:
    response = _book(salon, service_ids=[salon['cut'].id, salon['fringe'].id], notes=' Long hair ')

    assert response.user_id == salon['client'].id
    assert response.practitioner_id == salon['practitioner'].id
    assert response.start_time == datetime(2026, 1, 5, 10, 0)
    assert response.end_time == datetime(2026, 1, 5, 11, 15)
    assert response.duration_minutes == 75
    assert response.notes == 'Long hair'
    assert response.status == 'scheduled'


def test_overlapping_booking_is_rejected_with_conflict(salon) -> None:
    _book(salon)

    with pytest.raises(HTTPException) as exception_info:
        _book(salon, user=salon['other_client'], start_time=time(9, 30))

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This time is already booked.'


def test_adjacent_booking_is_allowed(salon) -> None:
    _book(salon)

    response = _book(salon, user=salon['other_client'], start_time=time(11, 0))

    assert response.start_time == datetime(2026, 1, 5, 11, 0)


def test_booking_outside_working_hours_is_rejected(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(salon, start_time=time(19, 0))

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == "The selected time is outside the practitioner's working hours."


def test_client_cannot_book_same_day(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(salon, appointment_date=TODAY, start_time=time(10, 0))

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Same-day appointments can only be booked by the salon.'


def test_practitioner_books_same_day_for_client(salon) -> None:
    response = _book(
        salon,
        user=salon['practitioner'],
        appointment_date=TODAY,
        practitioner_id=None,
        client_id=salon['client'].id,
    )

    assert response.user_id == salon['client'].id
    assert response.practitioner_id == salon['practitioner'].id


def test_practitioner_must_pick_a_client(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(salon, user=salon['practitioner'])

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Please select a client or choose external client.'


def test_practitioner_books_external_client(salon) -> None:
    external = ExternalClientInfo(first_name=' Thandi ', last_name='Dlamini', email=' THANDI@EXAMPLE.COM ')

    response = _book(salon, user=salon['practitioner'], external_client=external)

    assert response.user_id is None
    assert response.is_external_client is True
    assert response.client_first_name == 'Thandi'
    assert response.client_email == 'thandi@example.com'


def test_external_client_needs_contact_details(salon) -> None:
    external = ExternalClientInfo(first_name='Thandi', last_name='Dlamini')

    with pytest.raises(HTTPException) as exception_info:
        _book(salon, user=salon['practitioner'], external_client=external)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Please enter either email or phone number for the client.'


def test_client_must_pick_a_practitioner(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(salon, practitioner_id=None)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Please select a practitioner.'


def test_unknown_practitioner_is_not_found(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(salon, practitioner_id=salon['client'].id)

    assert exception_info.value.status_code == 404


def test_unknown_service_is_rejected(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(salon, service_ids=[999])

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Unknown or inactive service(s): 999'


def test_booking_on_blocked_date_is_rejected(salon) -> None:
    schedule_service.add_blocked_date(salon['db'], salon['practitioner'].id, MONDAY, 'Training')

    with pytest.raises(HTTPException) as exception_info:
        _book(salon)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'The practitioner is not taking bookings on this date.'


def test_client_cannot_list_practitioner_appointments(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_appointments_for_date(
            practitioner_id=salon['practitioner'].id,
            selected_date=MONDAY,
            current_user=salon['client'],
            db=salon['db'],
        )

    assert exception_info.value.status_code == 403


def test_practitioner_lists_day_appointments(salon) -> None:
    _book(salon)
    _book(salon, user=salon['other_client'], start_time=time(8, 0))

    appointments = list_appointments_for_date(
        practitioner_id=salon['practitioner'].id,
        selected_date=MONDAY,
        current_user=salon['practitioner'],
        db=salon['db'],
    )

    assert [appointment.start_time.time() for appointment in appointments] == [time(8, 0), time(10, 0)]


def test_reschedule_overlapping_own_slot_is_allowed(salon) -> None:
    booked = _book(salon)

    response = update_appointment(
        appointment_id=booked.id,
        data=UpdateAppointmentRequest(start_time=time(10, 30)),
        current_user=salon['client'],
        db=salon['db'],
    )

    assert response.start_time == datetime(2026, 1, 5, 10, 30)
    assert response.end_time == datetime(2026, 1, 5, 11, 30)


def test_reschedule_into_another_booking_conflicts(salon) -> None:
    booked = _book(salon)
    _book(salon, user=salon['other_client'], start_time=time(12, 0))

    with pytest.raises(HTTPException) as exception_info:
        update_appointment(
            appointment_id=booked.id,
            data=UpdateAppointmentRequest(start_time=time(11, 30)),
            current_user=salon['client'],
            db=salon['db'],
        )

    assert exception_info.value.status_code == 409


def test_other_client_cannot_update_appointment(salon) -> None:
    booked = _book(salon)

    with pytest.raises(HTTPException) as exception_info:
        update_appointment(
            appointment_id=booked.id,
            data=UpdateAppointmentRequest(notes='Mine now'),
            current_user=salon['other_client'],
            db=salon['db'],
        )

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'You do not have permission to update this appointment.'


def test_cancelled_appointment_cannot_be_changed(salon) -> None:
    booked = _book(salon)
    appointment = salon['db'].get(Appointment, booked.id)
    appointment.status = 'cancelled'
    salon['db'].commit()

    with pytest.raises(HTTPException) as exception_info:
        update_appointment(
            appointment_id=booked.id,
            data=UpdateAppointmentRequest(notes='Back on'),
            current_user=salon['client'],
            db=salon['db'],
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'A cancelled appointment cannot be changed.'


def test_client_cannot_delete_appointment(salon) -> None:
    booked = _book(salon)

    with pytest.raises(HTTPException) as exception_info:
        delete_appointment(appointment_id=booked.id, current_user=salon['client'], db=salon['db'])

    assert exception_info.value.status_code == 403


def test_practitioner_delete_frees_the_slot(salon) -> None:
    booked = _book(salon)

    delete_appointment(appointment_id=booked.id, current_user=salon['practitioner'], db=salon['db'])

    assert salon['db'].get(Appointment, booked.id).is_deleted is True
    response = _book(salon, user=salon['other_client'])
    assert response.start_time == datetime(2026, 1, 5, 10, 0)


def test_deleting_missing_appointment_is_not_found(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        delete_appointment(appointment_id=404, current_user=salon['practitioner'], db=salon['db'])

    assert exception_info.value.status_code == 404


def test_services_without_duration_are_rejected(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(salon, service_ids=[salon['consultation'].id])

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'The selected services have no bookable duration.'


def test_practitioner_cannot_book_a_time_that_has_passed(salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(
            salon,
            user=salon['practitioner'],
            appointment_date=TODAY,
            start_time=time(8, 30),
            client_id=salon['client'].id,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Appointments cannot be booked in the past.'


def test_same_day_reschedule_into_the_past_is_rejected(salon, monkeypatch: pytest.MonkeyPatch) -> None:
    booked = _book(salon, user=salon['practitioner'], appointment_date=TODAY, client_id=salon['client'].id)
    monkeypatch.setattr('salon_api.routes.appointment_routes.booking_now', lambda: datetime(2026, 1, 2, 11, 0))

    with pytest.raises(HTTPException) as exception_info:
        update_appointment(
            appointment_id=booked.id,
            data=UpdateAppointmentRequest(start_time=time(10, 30)),
            current_user=salon['client'],
            db=salon['db'],
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Appointments cannot be booked in the past.'


def test_notes_change_on_started_appointment_keeps_its_time(salon, monkeypatch: pytest.MonkeyPatch) -> None:
    booked = _book(salon, user=salon['practitioner'], appointment_date=TODAY, client_id=salon['client'].id)
    monkeypatch.setattr('salon_api.routes.appointment_routes.booking_now', lambda: datetime(2026, 1, 2, 10, 15))

    response = update_appointment(
        appointment_id=booked.id,
        data=UpdateAppointmentRequest(notes='Running late'),
        current_user=salon['client'],
        db=salon['db'],
    )

    assert response.start_time == datetime(2026, 1, 2, 10, 0)
    assert response.notes == 'Running late'
