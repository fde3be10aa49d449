"""
Saved booking-wizard state.

Each user has at most one active progress row. Rows expire
``BOOKING_PROGRESS_TTL_DAYS`` after their last save and are soft-deleted
when cleared or cleaned up.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from salon_api.core import config
from salon_api.models.booking_progress import BookingProgress

logger = logging.getLogger(__name__)

PROGRESS_FIELDS = (
    'practitioner_id',
    'current_step',
    'selected_services',
    'selected_practitioner_id',
    'selected_client_id',
    'selected_date',
    'selected_time',
    'notes',
    'is_external_client',
    'external_client_info',
)


def _active_progress(db: Session, user_id: int):
    return db.query(BookingProgress).filter(
        BookingProgress.user_id == user_id,
        BookingProgress.is_active.is_(True),
        BookingProgress.is_deleted.is_(False),
    )


def save_progress(db: Session, user_id: int, progress: dict, now: datetime | None = None) -> BookingProgress:
    now = now or datetime.now()
    values = {field: progress.get(field) for field in PROGRESS_FIELDS}
    values['current_step'] = values['current_step'] or 1
    values['is_external_client'] = bool(values['is_external_client'])
    if not values['is_external_client']:
        values['external_client_info'] = None

    record = _active_progress(db, user_id).first()
    if record is None:
        record = BookingProgress(user_id=user_id)
        db.add(record)

    for field, value in values.items():
        setattr(record, field, value)
    record.updated_at = now
    record.expires_at = now + timedelta(days=config.BOOKING_PROGRESS_TTL_DAYS)

    db.commit()
    db.refresh(record)
    return record


def load_progress(db: Session, user_id: int, now: datetime | None = None) -> BookingProgress | None:
    now = now or datetime.now()
    return _active_progress(db, user_id).filter(BookingProgress.expires_at > now).first()


def clear_progress(db: Session, user_id: int, now: datetime | None = None) -> int:
    cleared = _active_progress(db, user_id).update(
        {
            BookingProgress.is_active: False,
            BookingProgress.is_deleted: True,
            BookingProgress.updated_at: now or datetime.now(),
        },
        synchronize_session=False,
    )
    db.commit()
    return cleared


def cleanup_expired_progress(db: Session, now: datetime | None = None) -> int:
    now = now or datetime.now()
    cleaned = db.query(BookingProgress).filter(
        BookingProgress.expires_at < now,
        BookingProgress.is_active.is_(True),
        BookingProgress.is_deleted.is_(False),
    ).update(
        {
            BookingProgress.is_active: False,
            BookingProgress.is_deleted: True,
            BookingProgress.updated_at: now,
        },
        synchronize_session=False,
    )
    db.commit()
    logger.info('Deactivated %d expired booking progress row(s)', cleaned)
    return cleaned
