"""Blocked date model definitions."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from salon_api.database import Base


class BlockedDate(Base):
    """A whole day on which a practitioner takes no bookings."""
    __tablename__ = "blocked_dates"

    id = Column(Integer, primary_key=True)
    practitioner_id = Column(Integer, ForeignKey("users.id"), index=True)
    blocked_date = Column(Date, nullable=False)
    reason = Column(String)
    is_active = Column(Boolean, default=True)
    is_deleted = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())
