"""Appointment model definitions."""

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from salon_api.database import Base


class Appointment(Base):
    """Represents a booked appointment with a practitioner."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    practitioner_id = Column(Integer, ForeignKey("users.id"), index=True)
    service_ids = Column(JSON, default=list)
    appointment_date = Column(Date, index=True)
    start_time = Column(DateTime)
    end_time = Column(DateTime)
    status = Column(String, default="scheduled")
    notes = Column(String)

    is_external_client = Column(Boolean, default=False)
    client_first_name = Column(String)
    client_last_name = Column(String)
    client_email = Column(String)
    client_phone = Column(String)

    is_active = Column(Boolean, default=True)
    is_deleted = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
