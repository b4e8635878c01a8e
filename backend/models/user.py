"""User model definitions."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String
from backend.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"
    DOCTOR = "doctor"


class User(Base):
    """Represents a front-desk user who can sign in to the dashboard."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default=UserRole.STAFF.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
