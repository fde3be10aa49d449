"""Salon service model definitions."""

from sqlalchemy import Boolean, Column, Integer, Numeric, String

from salon_api.database import Base


class Service(Base):
    """A bookable treatment with its duration and price."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2))
    category_name = Column(String)
    category_display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    is_deleted = Column(Boolean, default=False)
