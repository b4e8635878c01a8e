"""Storage seam for the scheduling engine."""

from contextlib import contextmanager
from datetime import date
from threading import Lock
from typing import Iterator

from sqlalchemy.orm import Session

from backend.models.appointment import Appointment
from backend.models.doctor import Doctor


class SchedulingStore:
    """What the engine needs from storage.

    ``exclusive_access`` wraps the read-check-write of a booking. The base
    version does nothing, so two concurrent bookings for the same slot can both
    pass the conflict check. Stores that can serialize should override it.
    """

    def find_doctor_by_id(self, doctor_id: str) -> Doctor | None:
        raise NotImplementedError

    def find_appointment_by_id(self, appointment_id: str) -> Appointment | None:
        raise NotImplementedError

    def find_appointments(
        self,
        doctor_id: str,
        appointment_date: date,
        status: str,
        exclude_id: str | None = None,
    ) -> list[Appointment]:
        raise NotImplementedError

    def save_appointment(self, appointment: Appointment) -> Appointment:
        raise NotImplementedError

    @contextmanager
    def exclusive_access(self, doctor_id: str, appointment_date: date) -> Iterator[None]:
        yield


class BookingLocks:
    """Process-local locks keyed by (doctor id, date).

    An entry lives only while someone holds or waits on it, so the table never
    grows past the number of in-flight bookings.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[tuple[str, date], Lock] = {}
        self._holders: dict[tuple[str, date], int] = {}

    @contextmanager
    def hold(self, doctor_id: str, appointment_date: date) -> Iterator[None]:
        key = (doctor_id, appointment_date)
        with self._guard:
            lock = self._locks.setdefault(key, Lock())
            self._holders[key] = self._holders.get(key, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[key] -= 1
                if not self._holders[key]:
                    del self._holders[key]
                    del self._locks[key]


booking_locks = BookingLocks()


class SqlAlchemySchedulingStore(SchedulingStore):
    def __init__(self, db: Session, locks: BookingLocks | None = None):
        self.db = db
        self.locks = locks

    def find_doctor_by_id(self, doctor_id: str) -> Doctor | None:
        return self.db.query(Doctor).filter(
            Doctor.id == doctor_id,
            Doctor.is_active.is_(True),
        ).first()

    def find_appointment_by_id(self, appointment_id: str) -> Appointment | None:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def find_appointments(
        self,
        doctor_id: str,
        appointment_date: date,
        status: str,
        exclude_id: str | None = None,
    ) -> list[Appointment]:
        query = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.status == status,
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)

        return query.order_by(Appointment.start_time.asc()).all()

    def save_appointment(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    @contextmanager
    def exclusive_access(self, doctor_id: str, appointment_date: date) -> Iterator[None]:
        if self.locks is None:
            yield
            return

        with self.locks.hold(doctor_id, appointment_date):
            yield
