"""Weekly working-hours form handling."""

from datetime import time

from pydantic import BaseModel, field_validator

from salon_api.core import config

# (form key, display name, Sunday-indexed day of week), in form order.
DAYS_OF_WEEK = [
    ('monday', 'Monday', 1),
    ('tuesday', 'Tuesday', 2),
    ('wednesday', 'Wednesday', 3),
    ('thursday', 'Thursday', 4),
    ('friday', 'Friday', 5),
    ('saturday', 'Saturday', 6),
    ('sunday', 'Sunday', 0),
]

DEFAULT_OPEN_TIME = time(8, 0)
DEFAULT_CLOSE_TIME = time(19, 0)
DEFAULT_WORKING_DAYS = {1, 2, 3, 4, 5}


class ScheduleValidationError(ValueError):
    pass


class DaySchedule(BaseModel):
    day_of_week: int
    day_name: str
    start_time: time
    end_time: time
    time_slot_interval_minutes: int = config.DEFAULT_SLOT_INTERVAL_MINUTES
    is_active: bool

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError('Day of week must be between 0 (Sunday) and 6 (Saturday).')
        return value

    @field_validator('time_slot_interval_minutes')
    @classmethod
    def validate_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Time slot interval must be a positive number of minutes.')
        return value


class ScheduleFormData(BaseModel):
    monday: DaySchedule
    tuesday: DaySchedule
    wednesday: DaySchedule
    thursday: DaySchedule
    friday: DaySchedule
    saturday: DaySchedule
    sunday: DaySchedule


def get_default_schedule() -> ScheduleFormData:
    """Monday to Friday, 8 AM to 7 PM."""
    return ScheduleFormData(**{
        key: DaySchedule(
            day_of_week=day_of_week,
            day_name=day_name,
            start_time=DEFAULT_OPEN_TIME,
            end_time=DEFAULT_CLOSE_TIME,
            time_slot_interval_minutes=config.DEFAULT_SLOT_INTERVAL_MINUTES,
            is_active=day_of_week in DEFAULT_WORKING_DAYS,
        )
        for key, day_name, day_of_week in DAYS_OF_WEEK
    })


def build_schedule_entries(practitioner_id: int, form: ScheduleFormData) -> list[dict]:
    """Row values for every active day of ``form``, Sunday first.

    Raises ``ScheduleValidationError`` for the first active day whose start
    is not before its end.
    """
    entries = []
    for key, _, day_of_week in sorted(DAYS_OF_WEEK, key=lambda day: day[2]):
        day_schedule: DaySchedule = getattr(form, key)
        if not day_schedule.is_active:
            continue
        if day_schedule.start_time >= day_schedule.end_time:
            raise ScheduleValidationError(
                f'Invalid time range for {day_schedule.day_name}: start time must be before end time'
            )
        entries.append({
            'practitioner_id': practitioner_id,
            'day_of_week': day_of_week,
            'start_time': day_schedule.start_time,
            'end_time': day_schedule.end_time,
            'time_slot_interval_minutes': day_schedule.time_slot_interval_minutes,
            'is_active': True,
            'is_deleted': False,
        })
    return entries


def schedule_to_form(working_schedules) -> ScheduleFormData:
    """Overlay stored schedule rows on the default form.

    With no stored rows the default form is returned unchanged; otherwise
    days without a row are switched off.
    """
    form = get_default_schedule()
    working_schedules = list(working_schedules)
    if not working_schedules:
        return form

    for key, _, _ in DAYS_OF_WEEK:
        getattr(form, key).is_active = False

    keys_by_day = {day_of_week: (key, day_name) for key, day_name, day_of_week in DAYS_OF_WEEK}
    for schedule in working_schedules:
        if schedule.day_of_week not in keys_by_day:
            continue
        key, day_name = keys_by_day[schedule.day_of_week]
        if getattr(form, key).is_active:
            # First window of the day wins, matching slot generation.
            continue
        setattr(form, key, DaySchedule(
            day_of_week=schedule.day_of_week,
            day_name=day_name,
            start_time=schedule.start_time,
            end_time=schedule.end_time,
            time_slot_interval_minutes=schedule.time_slot_interval_minutes or config.DEFAULT_SLOT_INTERVAL_MINUTES,
            is_active=True,
        ))
    return form
