from datetime import date, datetime, time

import pytest
from sqlalchemy.exc import OperationalError

from salon_api.models.appointment import Appointment
from salon_api.models.working_schedule import WorkingSchedule
from salon_api.scheduling.working_hours import ScheduleValidationError, get_default_schedule
from salon_api.services import schedule_service

PRACTITIONER_ID = 3
MONDAY = date(2026, 1, 5)


def _add_appointment(db, start: datetime, end: datetime, **overrides) -> Appointment:
    values = {
        'practitioner_id': PRACTITIONER_ID,
        'appointment_date': start.date(),
        'start_time': start,
        'end_time': end,
    }
    values.update(overrides)
    appointment = Appointment(**values)
    db.add(appointment)
    db.commit()
    return appointment


def test_save_practitioner_schedule_replaces_previous_rows(db) -> None:
    db.add(WorkingSchedule(practitioner_id=PRACTITIONER_ID, day_of_week=6, start_time=time(9, 0), end_time=time(12, 0)))
    db.commit()

    saved = schedule_service.save_practitioner_schedule(db, PRACTITIONER_ID, get_default_schedule())

    assert [row.day_of_week for row in saved] == [1, 2, 3, 4, 5]
    assert db.query(WorkingSchedule).filter(WorkingSchedule.is_deleted.is_(True)).count() == 1


def test_save_practitioner_schedule_rejects_invalid_day_without_writing(db) -> None:
    db.add(WorkingSchedule(practitioner_id=PRACTITIONER_ID, day_of_week=6, start_time=time(9, 0), end_time=time(12, 0)))
    db.commit()
    form = get_default_schedule()
    form.monday.end_time = time(8, 0)

    with pytest.raises(ScheduleValidationError):
        schedule_service.save_practitioner_schedule(db, PRACTITIONER_ID, form)

    remaining = schedule_service.get_practitioner_schedule(db, PRACTITIONER_ID)
    assert [row.day_of_week for row in remaining] == [6]


def test_get_working_hours_for_day_filters_by_weekday(db) -> None:
    schedule_service.save_practitioner_schedule(db, PRACTITIONER_ID, get_default_schedule())

    assert len(schedule_service.get_working_hours_for_day(db, PRACTITIONER_ID, 3)) == 1
    assert schedule_service.get_working_hours_for_day(db, PRACTITIONER_ID, 0) == []
    assert schedule_service.get_working_hours_for_day(db, PRACTITIONER_ID + 1, 3) == []


def test_get_appointments_for_date_skips_deleted_and_excluded(db) -> None:
    kept = _add_appointment(db, datetime(2026, 1, 5, 9, 0), datetime(2026, 1, 5, 9, 30))
    excluded = _add_appointment(db, datetime(2026, 1, 5, 11, 0), datetime(2026, 1, 5, 11, 30))
    _add_appointment(db, datetime(2026, 1, 5, 12, 0), datetime(2026, 1, 5, 12, 30), is_deleted=True)
    _add_appointment(db, datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 9, 30))

    appointments = schedule_service.get_appointments_for_date(
        db, PRACTITIONER_ID, MONDAY, exclude_appointment_id=excluded.id,
    )

    assert [appointment.id for appointment in appointments] == [kept.id]


def test_load_helpers_fall_back_to_empty_lists(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_query(*args, **kwargs):
        raise OperationalError('SELECT 1', {}, Exception('database is locked'))

    monkeypatch.setattr(schedule_service, 'get_practitioner_schedule', failing_query)
    monkeypatch.setattr(schedule_service, 'get_appointments_for_date', failing_query)

    assert schedule_service.load_practitioner_schedule(None, PRACTITIONER_ID) == []
    assert schedule_service.load_appointments_for_date(None, PRACTITIONER_ID, MONDAY) == []


def test_blocked_dates_round_trip(db) -> None:
    first = schedule_service.add_blocked_date(db, PRACTITIONER_ID, date(2026, 2, 10), 'Training')
    again = schedule_service.add_blocked_date(db, PRACTITIONER_ID, date(2026, 2, 10), 'Duplicate')
    schedule_service.add_blocked_date(db, PRACTITIONER_ID, date(2026, 2, 3))

    assert again.id == first.id
    assert again.reason == 'Training'
    assert schedule_service.get_blocked_dates(db, PRACTITIONER_ID) == ['2026-02-03', '2026-02-10']
    assert schedule_service.is_date_blocked(db, PRACTITIONER_ID, date(2026, 2, 10)) is True
    assert schedule_service.is_date_blocked(db, PRACTITIONER_ID + 1, date(2026, 2, 10)) is False

    assert schedule_service.remove_blocked_date(db, PRACTITIONER_ID, date(2026, 2, 10)) is True
    assert schedule_service.remove_blocked_date(db, PRACTITIONER_ID, date(2026, 2, 10)) is False
    assert schedule_service.get_blocked_dates(db, PRACTITIONER_ID) == ['2026-02-03']
