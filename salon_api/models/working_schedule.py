"""Working schedule model definitions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Time
from sqlalchemy.sql import func

from salon_api.database import Base


class WorkingSchedule(Base):
    """One weekly recurring availability window of a practitioner.

    ``day_of_week`` is Sunday-indexed (0 = Sunday ... 6 = Saturday).
    """
    __tablename__ = "working_schedule"

    id = Column(Integer, primary_key=True)
    practitioner_id = Column(Integer, ForeignKey("users.id"), index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    time_slot_interval_minutes = Column(Integer, default=30)
    is_active = Column(Boolean, default=True)
    is_deleted = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
