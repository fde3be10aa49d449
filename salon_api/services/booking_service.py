"""
Booking rules shared by appointment creation and rescheduling.

A requested start time is bookable only if it is one of the slots generated
for that date and that slot is available for the full service duration.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from salon_api.core import config
from salon_api.scheduling.slots import format_seconds, generate_time_slots, seconds_of_day
from salon_api.services import schedule_service

logger = logging.getLogger(__name__)


class BookingRuleError(ValueError):
    pass


class SlotUnavailableError(BookingRuleError):
    pass


EMPTY_DURATION_DETAIL = 'The selected services have no bookable duration.'


def validate_duration(duration_minutes: int) -> None:
    if duration_minutes <= 0:
        raise BookingRuleError(EMPTY_DURATION_DETAIL)


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def validate_booking_date(selected_date: date, today: date, allow_same_day: bool) -> None:
    if selected_date < today:
        raise BookingRuleError('Appointments cannot be booked in the past.')
    if selected_date == today and not allow_same_day:
        raise BookingRuleError('Same-day appointments can only be booked by the salon.')
    if selected_date > add_months(today, config.BOOKING_WINDOW_MONTHS):
        raise BookingRuleError(
            f'Appointments can only be booked up to {config.BOOKING_WINDOW_MONTHS} months ahead.'
        )


def validate_start_time(selected_date: date, start: time, now: datetime) -> None:
    if datetime.combine(selected_date, start) < now.replace(microsecond=0):
        raise BookingRuleError('Appointments cannot be booked in the past.')


def validate_external_client(first_name: str | None, last_name: str | None, email: str | None, phone: str | None) -> None:
    if not (first_name or '').strip():
        raise BookingRuleError("Please enter the client's first name.")
    if not (last_name or '').strip():
        raise BookingRuleError("Please enter the client's last name.")
    if not (email or '').strip() and not (phone or '').strip():
        raise BookingRuleError('Please enter either email or phone number for the client.')


def appointment_bounds(selected_date: date, start: time, duration_minutes: int) -> tuple[datetime, datetime]:
    start_time = datetime.combine(selected_date, start.replace(microsecond=0))
    return start_time, start_time + timedelta(minutes=duration_minutes)


def ensure_slot_available(
    db: Session,
    practitioner_id: int,
    selected_date: date,
    start: time,
    duration_minutes: int,
    exclude_appointment_id: int | None = None,
) -> None:
    """Raise unless ``start`` is an available slot for the whole duration.

    Database errors propagate; booking never proceeds on a partial view of
    the practitioner's day.
    """
    validate_duration(duration_minutes)

    if schedule_service.is_date_blocked(db, practitioner_id, selected_date):
        raise BookingRuleError('The practitioner is not taking bookings on this date.')

    working_schedules = schedule_service.get_practitioner_schedule(db, practitioner_id)
    appointments = schedule_service.get_appointments_for_date(
        db, practitioner_id, selected_date, exclude_appointment_id,
    )
    slots = generate_time_slots(working_schedules, selected_date, appointments, duration_minutes)

    requested = format_seconds(seconds_of_day(start))
    slot = next((slot for slot in slots if slot.time == requested), None)
    if slot is None:
        raise BookingRuleError("The selected time is outside the practitioner's working hours.")
    if not slot.available:
        logger.info(
            'Rejected booking for practitioner %s at %s %s: slot taken',
            practitioner_id,
            selected_date.isoformat(),
            requested,
        )
        raise SlotUnavailableError('This time is already booked.')
