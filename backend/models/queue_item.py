"""Walk-in queue model definitions."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.models.doctor import Doctor

DEFAULT_ESTIMATED_WAIT_MINUTES = 15


class QueueStatus(str, enum.Enum):
    WAITING = "waiting"
    WITH_DOCTOR = "with_doctor"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class QueuePriority(str, enum.Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"


# Higher rank is served first.
PRIORITY_RANK = {
    QueuePriority.NORMAL.value: 0,
    QueuePriority.URGENT.value: 1,
    QueuePriority.EMERGENCY.value: 2,
}


class QueueItem(Base):
    """Represents a walk-in patient waiting to be seen."""
    __tablename__ = "queue_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_name = Column(String, nullable=False)
    patient_phone = Column(String, nullable=False)
    patient_email = Column(String, nullable=True)
    patient_notes = Column(Text, nullable=True)
    symptoms = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=QueueStatus.WAITING.value)
    priority = Column(String, nullable=False, default=QueuePriority.NORMAL.value)
    arrival_time = Column(DateTime, nullable=True)
    called_time = Column(DateTime, nullable=True)
    completed_time = Column(DateTime, nullable=True)
    estimated_wait_time = Column(Integer, nullable=False, default=0)  # minutes
    assigned_doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    assigned_doctor = relationship(Doctor)

    def wait_minutes(self, now: datetime) -> int:
        if self.arrival_time is None:
            return 0
        return max(0, int((now - self.arrival_time).total_seconds() // 60))
