"""
Database access for practitioner schedules, day appointments and blocked
dates.

Readers raise ``SQLAlchemyError`` like any query; the ``load_*`` helpers are
the call-site variants used for slot lookup, which log the failure and fall
back to an empty list.
"""

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_api.models.appointment import Appointment
from salon_api.models.blocked_date import BlockedDate
from salon_api.models.working_schedule import WorkingSchedule
from salon_api.scheduling.working_hours import ScheduleFormData, build_schedule_entries

logger = logging.getLogger(__name__)


def get_practitioner_schedule(db: Session, practitioner_id: int) -> list[WorkingSchedule]:
    return db.query(WorkingSchedule).filter(
        WorkingSchedule.practitioner_id == practitioner_id,
        WorkingSchedule.is_active.is_(True),
        WorkingSchedule.is_deleted.is_(False),
    ).order_by(WorkingSchedule.day_of_week.asc(), WorkingSchedule.start_time.asc()).all()


def get_working_hours_for_day(db: Session, practitioner_id: int, day_of_week: int) -> list[WorkingSchedule]:
    return db.query(WorkingSchedule).filter(
        WorkingSchedule.practitioner_id == practitioner_id,
        WorkingSchedule.day_of_week == day_of_week,
        WorkingSchedule.is_active.is_(True),
        WorkingSchedule.is_deleted.is_(False),
    ).order_by(WorkingSchedule.start_time.asc()).all()


def save_practitioner_schedule(db: Session, practitioner_id: int, form: ScheduleFormData) -> list[WorkingSchedule]:
    """Replace the practitioner's weekly schedule with the active days of ``form``.

    Validation happens before anything is written, so an invalid day leaves
    the stored schedule untouched.
    """
    entries = build_schedule_entries(practitioner_id, form)

    try:
        db.query(WorkingSchedule).filter(
            WorkingSchedule.practitioner_id == practitioner_id,
            WorkingSchedule.is_active.is_(True),
            WorkingSchedule.is_deleted.is_(False),
        ).update({WorkingSchedule.is_deleted: True}, synchronize_session=False)

        rows = [WorkingSchedule(**entry) for entry in entries]
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Failed to save schedule for practitioner %s', practitioner_id)
        raise

    logger.info('Saved %d working day(s) for practitioner %s', len(rows), practitioner_id)
    return get_practitioner_schedule(db, practitioner_id)


def get_appointments_for_date(
    db: Session,
    practitioner_id: int,
    selected_date: date,
    exclude_appointment_id: int | None = None,
) -> list[Appointment]:
    query = db.query(Appointment).filter(
        Appointment.practitioner_id == practitioner_id,
        Appointment.appointment_date == selected_date,
        Appointment.is_active.is_(True),
        Appointment.is_deleted.is_(False),
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.order_by(Appointment.start_time.asc()).all()


def load_practitioner_schedule(db: Session, practitioner_id: int) -> list[WorkingSchedule]:
    try:
        return get_practitioner_schedule(db, practitioner_id)
    except SQLAlchemyError:
        logger.warning('Could not load working schedule for practitioner %s', practitioner_id, exc_info=True)
        return []


def load_appointments_for_date(
    db: Session,
    practitioner_id: int,
    selected_date: date,
    exclude_appointment_id: int | None = None,
) -> list[Appointment]:
    try:
        return get_appointments_for_date(db, practitioner_id, selected_date, exclude_appointment_id)
    except SQLAlchemyError:
        logger.warning(
            'Could not load appointments for practitioner %s on %s',
            practitioner_id,
            selected_date.isoformat(),
            exc_info=True,
        )
        return []


def _active_blocked_dates(db: Session, practitioner_id: int):
    return db.query(BlockedDate).filter(
        BlockedDate.practitioner_id == practitioner_id,
        BlockedDate.is_active.is_(True),
        BlockedDate.is_deleted.is_(False),
    )


def get_blocked_dates_with_details(db: Session, practitioner_id: int) -> list[BlockedDate]:
    return _active_blocked_dates(db, practitioner_id).order_by(BlockedDate.blocked_date.asc()).all()


def get_blocked_dates(db: Session, practitioner_id: int) -> list[str]:
    return [blocked.blocked_date.isoformat() for blocked in get_blocked_dates_with_details(db, practitioner_id)]


def is_date_blocked(db: Session, practitioner_id: int, selected_date: date) -> bool:
    return _active_blocked_dates(db, practitioner_id).filter(
        BlockedDate.blocked_date == selected_date,
    ).first() is not None


def add_blocked_date(db: Session, practitioner_id: int, blocked_date: date, reason: str | None = None) -> BlockedDate:
    existing = _active_blocked_dates(db, practitioner_id).filter(BlockedDate.blocked_date == blocked_date).first()
    if existing:
        return existing

    blocked = BlockedDate(practitioner_id=practitioner_id, blocked_date=blocked_date, reason=reason)
    db.add(blocked)
    db.commit()
    db.refresh(blocked)
    return blocked


def remove_blocked_date(db: Session, practitioner_id: int, blocked_date: date) -> bool:
    updated = _active_blocked_dates(db, practitioner_id).filter(
        BlockedDate.blocked_date == blocked_date,
    ).update({BlockedDate.is_deleted: True, BlockedDate.is_active: False}, synchronize_session=False)
    db.commit()
    return updated > 0
