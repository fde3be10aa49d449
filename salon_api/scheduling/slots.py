"""
Slot generation for a practitioner's working day.

Turns the weekly working schedule into the bookable start times of one
calendar date and flags every start time whose service would collide with
an appointment that is already booked.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from salon_api.core import config

SECONDS_PER_MINUTE = 60
SECONDS_PER_DAY = 24 * 60 * 60


class InvalidTimeValue(ValueError):
    """Raised when a schedule or appointment time cannot be read."""


class TimeSlot(BaseModel):
    time: str
    available: bool
    is_working_hours: bool = True


def sunday_indexed_weekday(selected_date: date) -> int:
    """Weekday of ``selected_date`` with 0 = Sunday ... 6 = Saturday."""
    return (selected_date.weekday() + 1) % 7


def _read(record: Any, field: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def _parse_clock(text: str) -> time | None:
    parts = text.split(':')
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
        return None
    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    try:
        return time(hour, minute, second)
    except ValueError:
        return None


def normalize_time_of_day(value: Any, timezone: tzinfo | None = None) -> time:
    """Return the local wall-clock time of ``value`` with seconds precision.

    Accepts ``time`` and ``datetime`` objects, bare ``HH:MM`` / ``HH:MM:SS``
    strings and ISO 8601 date-time strings. Timezone-aware date-times are
    converted to ``timezone`` (the salon's zone when omitted); naive ones are
    already local.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) >= 10 and text[4] == '-':
            try:
                value = datetime.fromisoformat(text)
            except ValueError as exc:
                raise InvalidTimeValue(f'Unreadable date-time value: {value!r}') from exc
        else:
            parsed = _parse_clock(text)
            if parsed is None:
                raise InvalidTimeValue(f'Unreadable time value: {value!r}')
            return parsed

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone or ZoneInfo(config.SALON_TIMEZONE))
        return value.time().replace(microsecond=0, tzinfo=None)

    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)

    raise InvalidTimeValue(f'Unreadable time value: {value!r}')


def seconds_of_day(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def format_seconds(seconds: int) -> str:
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f'{hours:02d}:{minutes:02d}:{secs:02d}'


def find_day_schedule(working_schedules: Iterable[Any], selected_date: date) -> Any | None:
    """First schedule entry for the weekday of ``selected_date``, if any."""
    day_of_week = sunday_indexed_weekday(selected_date)
    return next(
        (schedule for schedule in working_schedules if _read(schedule, 'day_of_week') == day_of_week),
        None,
    )


def busy_intervals(existing_appointments: Iterable[Any], timezone: tzinfo | None = None) -> list[tuple[int, int]]:
    """Appointments as ``(start, end)`` seconds of day.

    An end before its start belongs to the following day; a zero-length
    appointment blocks nothing.
    """
    intervals: list[tuple[int, int]] = []
    for appointment in existing_appointments:
        start = seconds_of_day(normalize_time_of_day(_read(appointment, 'start_time'), timezone))
        end = seconds_of_day(normalize_time_of_day(_read(appointment, 'end_time'), timezone))
        if end < start:
            end += SECONDS_PER_DAY
        intervals.append((start, end))
    return intervals


def generate_time_slots(
    working_schedules: Iterable[Any],
    selected_date: date,
    existing_appointments: Iterable[Any] = (),
    service_duration_minutes: int = config.DEFAULT_SERVICE_DURATION_MINUTES,
    timezone: tzinfo | None = None,
) -> list[TimeSlot]:
    """Bookable start times of ``selected_date``, earliest first.

    Slots start at the window start and step by the schedule's interval
    until a start reaches the window end. A slot is unavailable when
    ``[start, start + service duration)`` overlaps any appointment.
    """
    if service_duration_minutes <= 0:
        raise ValueError('Service duration must be a positive number of minutes.')

    day_schedule = find_day_schedule(working_schedules, selected_date)
    if day_schedule is None:
        return []

    window_start = seconds_of_day(normalize_time_of_day(_read(day_schedule, 'start_time')))
    window_end = seconds_of_day(normalize_time_of_day(_read(day_schedule, 'end_time')))

    interval_minutes = _read(day_schedule, 'time_slot_interval_minutes') or config.DEFAULT_SLOT_INTERVAL_MINUTES
    if interval_minutes < 0:
        raise ValueError('Slot interval must be a positive number of minutes.')

    step = interval_minutes * SECONDS_PER_MINUTE
    duration = service_duration_minutes * SECONDS_PER_MINUTE
    busy = busy_intervals(existing_appointments, timezone)

    slots: list[TimeSlot] = []
    slot_start = window_start
    while slot_start < window_end:
        slot_end = slot_start + duration
        has_conflict = any(slot_start < busy_end and slot_end > busy_start for busy_start, busy_end in busy)
        slots.append(TimeSlot(time=format_seconds(slot_start), available=not has_conflict, is_working_hours=True))
        slot_start += step

    return slots
