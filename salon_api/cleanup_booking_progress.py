"""Deactivate booking progress rows that have passed their expiry.

Usage:
    python -m salon_api.cleanup_booking_progress
"""
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from salon_api.core import config
from salon_api.database import SessionLocal
from salon_api.services.booking_progress_service import cleanup_expired_progress

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    db = SessionLocal()
    try:
        cleaned = cleanup_expired_progress(db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Booking progress cleanup failed')
        sys.exit(1)
    finally:
        db.close()
    print(f'Deactivated {cleaned} expired booking progress row(s).')


if __name__ == "__main__":
    main()
