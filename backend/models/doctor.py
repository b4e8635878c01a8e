"""Doctor model definitions."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from backend.database import Base

WEEKDAYS = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


class DoctorSpecialization(str, enum.Enum):
    GENERAL_PRACTICE = "General Practice"
    PEDIATRICS = "Pediatrics"
    CARDIOLOGY = "Cardiology"
    DERMATOLOGY = "Dermatology"
    ORTHOPEDICS = "Orthopedics"
    NEUROLOGY = "Neurology"
    PSYCHIATRY = "Psychiatry"
    SURGERY = "Surgery"
    EMERGENCY_MEDICINE = "Emergency Medicine"
    INTERNAL_MEDICINE = "Internal Medicine"


class DoctorGender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class DoctorStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFF_DUTY = "off_duty"


def default_availability() -> dict:
    """Weekdays 09:00-17:00, weekends closed."""
    template = {}
    for weekday in WEEKDAYS:
        if weekday in ("saturday", "sunday"):
            template[weekday] = {"start": "00:00", "end": "00:00", "available": False}
        else:
            template[weekday] = {"start": "09:00", "end": "17:00", "available": True}
    return template


def _new_id() -> str:
    return str(uuid.uuid4())


class Doctor(Base):
    """Represents a doctor and their weekly availability template."""
    __tablename__ = "doctors"

    id = Column(String(36), primary_key=True, default=_new_id)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=False)
    specialization = Column(String, nullable=False)
    gender = Column(String, nullable=False)
    location = Column(String, nullable=False)
    status = Column(String, nullable=False, default=DoctorStatus.AVAILABLE.value)
    availability = Column(JSON, nullable=False, default=default_availability)
    bio = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    appointments = relationship("Appointment", back_populates="doctor", passive_deletes=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def next_available_time(self, now: datetime) -> str:
        # datetime.weekday() is Monday=0; the template is keyed Sunday first.
        today = (self.availability or {}).get(WEEKDAYS[(now.weekday() + 1) % 7])
        if not today or not today.get("available"):
            return "Not available today"

        current_time = now.strftime("%H:%M")
        if current_time < today["start"]:
            return f"Today at {today['start']}"
        if today["start"] <= current_time < today["end"]:
            return "Now"
        return "Not available today"


# Registers Appointment for the relationship above.
import backend.models.appointment  # noqa: E402,F401
