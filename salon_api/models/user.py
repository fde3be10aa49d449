"""User model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from salon_api.database import Base


class User(Base):
    """Represents a client or practitioner account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    first_name = Column(String)
    last_name = Column(String)
    phone = Column(String)
    role = Column(String)  # client/practitioner/super_admin
    is_practitioner = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    is_deleted = Column(Boolean, default=False)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
