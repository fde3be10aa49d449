from datetime import date, datetime, time

import pytest

from salon_api.models.appointment import Appointment
from salon_api.scheduling.working_hours import get_default_schedule
from salon_api.services import booking_service, schedule_service
from salon_api.services.booking_service import BookingRuleError, SlotUnavailableError

PRACTITIONER_ID = 3
MONDAY = date(2026, 1, 5)


@pytest.fixture
def working_week(db):
    schedule_service.save_practitioner_schedule(db, PRACTITIONER_ID, get_default_schedule())
    db.add(Appointment(
        practitioner_id=PRACTITIONER_ID,
        appointment_date=MONDAY,
        start_time=datetime(2026, 1, 5, 10, 0),
        end_time=datetime(2026, 1, 5, 11, 0),
    ))
    db.commit()
    return db


@pytest.mark.parametrize(
    ('value', 'months', 'expected'),
    [
        (date(2026, 1, 15), 3, date(2026, 4, 15)),
        (date(2025, 11, 30), 3, date(2026, 2, 28)),
        (date(2026, 12, 31), 2, date(2027, 2, 28)),
    ],
)
def test_add_months_clamps_to_month_end(value: date, months: int, expected: date) -> None:
    assert booking_service.add_months(value, months) == expected


@pytest.mark.parametrize(
    ('selected_date', 'allow_same_day', 'error_detail'),
    [
        (date(2026, 1, 4), True, 'Appointments cannot be booked in the past.'),
        (date(2026, 1, 5), False, 'Same-day appointments can only be booked by the salon.'),
        (date(2026, 4, 6), True, 'Appointments can only be booked up to 3 months ahead.'),
    ],
)
def test_validate_booking_date_rejects(selected_date: date, allow_same_day: bool, error_detail: str) -> None:
    with pytest.raises(BookingRuleError) as exception_info:
        booking_service.validate_booking_date(selected_date, MONDAY, allow_same_day)

    assert str(exception_info.value) == error_detail


def test_validate_booking_date_accepts_window_edges() -> None:
    booking_service.validate_booking_date(MONDAY, MONDAY, allow_same_day=True)
    booking_service.validate_booking_date(date(2026, 4, 5), MONDAY, allow_same_day=False)


@pytest.mark.parametrize(
    ('first_name', 'last_name', 'email', 'phone', 'error_detail'),
    [
        (' ', 'Dlamini', 'a@b.co', None, "Please enter the client's first name."),
        ('Thandi', None, 'a@b.co', None, "Please enter the client's last name."),
        ('Thandi', 'Dlamini', '', '  ', 'Please enter either email or phone number for the client.'),
    ],
)
def test_validate_external_client_rejects(first_name, last_name, email, phone, error_detail: str) -> None:
    with pytest.raises(BookingRuleError) as exception_info:
        booking_service.validate_external_client(first_name, last_name, email, phone)

    assert str(exception_info.value) == error_detail


def test_validate_external_client_accepts_phone_only() -> None:
    booking_service.validate_external_client('Thandi', 'Dlamini', None, '0821234567')


def test_appointment_bounds_adds_duration() -> None:
    start, end = booking_service.appointment_bounds(MONDAY, time(18, 30), 90)

    assert start == datetime(2026, 1, 5, 18, 30)
    assert end == datetime(2026, 1, 5, 20, 0)


def test_ensure_slot_available_accepts_free_slot(working_week) -> None:
    booking_service.ensure_slot_available(working_week, PRACTITIONER_ID, MONDAY, time(9, 0), 60)


def test_ensure_slot_available_rejects_overlap(working_week) -> None:
    with pytest.raises(SlotUnavailableError) as exception_info:
        booking_service.ensure_slot_available(working_week, PRACTITIONER_ID, MONDAY, time(9, 30), 60)

    assert str(exception_info.value) == 'This time is already booked.'


def test_ensure_slot_available_ignores_excluded_appointment(working_week) -> None:
    booked = working_week.query(Appointment).one()

    booking_service.ensure_slot_available(
        working_week, PRACTITIONER_ID, MONDAY, time(10, 0), 60, exclude_appointment_id=booked.id,
    )


@pytest.mark.parametrize('start', [time(7, 30), time(19, 0), time(9, 10)])
def test_ensure_slot_available_rejects_times_off_the_grid(working_week, start: time) -> None:
    with pytest.raises(BookingRuleError) as exception_info:
        booking_service.ensure_slot_available(working_week, PRACTITIONER_ID, MONDAY, start, 30)

    assert str(exception_info.value) == "The selected time is outside the practitioner's working hours."


def test_ensure_slot_available_rejects_blocked_date(working_week) -> None:
    schedule_service.add_blocked_date(working_week, PRACTITIONER_ID, MONDAY, 'Leave')

    with pytest.raises(BookingRuleError) as exception_info:
        booking_service.ensure_slot_available(working_week, PRACTITIONER_ID, MONDAY, time(9, 0), 30)

    assert str(exception_info.value) == 'The practitioner is not taking bookings on this date.'


@pytest.mark.parametrize(
    ('selected_date', 'start'),
    [(date(2026, 1, 5), time(8, 59)), (date(2026, 1, 4), time(17, 0))],
)
def test_validate_start_time_rejects_passed_times(selected_date: date, start: time) -> None:
    with pytest.raises(BookingRuleError) as exception_info:
        booking_service.validate_start_time(selected_date, start, datetime(2026, 1, 5, 9, 0))

    assert str(exception_info.value) == 'Appointments cannot be booked in the past.'


def test_validate_start_time_accepts_current_and_later_times() -> None:
    now = datetime(2026, 1, 5, 9, 0, 30)

    booking_service.validate_start_time(MONDAY, time(9, 0, 30), now)
    booking_service.validate_start_time(MONDAY, time(9, 30), now)


def test_ensure_slot_available_rejects_zero_duration(working_week) -> None:
    with pytest.raises(BookingRuleError) as exception_info:
        booking_service.ensure_slot_available(working_week, PRACTITIONER_ID, MONDAY, time(9, 0), 0)

    assert str(exception_info.value) == 'The selected services have no bookable duration.'
