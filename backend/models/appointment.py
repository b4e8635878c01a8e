"""Appointment model definitions."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.models.doctor import Doctor


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentType(str, enum.Enum):
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"
    EMERGENCY = "emergency"
    ROUTINE_CHECKUP = "routine_checkup"
    SPECIALIST_VISIT = "specialist_visit"


def _new_id() -> str:
    return str(uuid.uuid4())


class Appointment(Base):
    """Represents a booked visit with one doctor on one calendar date."""
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=_new_id)
    patient_name = Column(String, nullable=False)
    patient_phone = Column(String, nullable=False)
    patient_email = Column(String, nullable=True)
    patient_notes = Column(Text, nullable=True)
    appointment_date = Column(Date, nullable=False)
    # Wall-clock "HH:MM" strings; zero padded so string order is time order.
    start_time = Column(String(8), nullable=False)
    end_time = Column(String(8), nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.SCHEDULED.value)
    type = Column(String, nullable=False, default=AppointmentType.CONSULTATION.value)
    notes = Column(Text, nullable=True)
    is_urgent = Column(Boolean, nullable=False, default=False)
    doctor_id = Column(String(36), ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    doctor = relationship(Doctor, back_populates="appointments")

    @property
    def duration_minutes(self) -> int:
        start_hours, start_minutes = (int(part) for part in self.start_time.split(":")[:2])
        end_hours, end_minutes = (int(part) for part in self.end_time.split(":")[:2])
        return (end_hours * 60 + end_minutes) - (start_hours * 60 + start_minutes)

    @property
    def doctor_name(self) -> str:
        if self.doctor is None:
            return "Unknown Doctor"
        return self.doctor.full_name
