"""Booking progress model definitions."""

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from salon_api.database import Base


class BookingProgress(Base):
    """Saved state of a user's unfinished booking."""
    __tablename__ = "booking_progress"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    practitioner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    current_step = Column(Integer, default=1)
    selected_services = Column(JSON)
    selected_practitioner_id = Column(Integer, nullable=True)
    selected_client_id = Column(Integer, nullable=True)
    selected_date = Column(Date, nullable=True)
    selected_time = Column(String, nullable=True)
    notes = Column(String)
    is_external_client = Column(Boolean, default=False)
    external_client_info = Column(JSON)
    expires_at = Column(DateTime)
    is_active = Column(Boolean, default=True)
    is_deleted = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
