"""Appointment booking, rescheduling, slot lookup and status changes."""

import logging
from datetime import date

from backend.core import config
from backend.models.appointment import Appointment, AppointmentStatus
from backend.scheduling import rules
from backend.scheduling.errors import (
    InvalidTimeRangeError,
    NotFoundError,
    SchedulingConflictError,
)
from backend.scheduling.store import SchedulingStore

logger = logging.getLogger(__name__)

CONFLICT_DETAIL = 'Doctor has a conflicting appointment at this time'
DOCTOR_NOT_FOUND_DETAIL = 'Doctor not found'
APPOINTMENT_NOT_FOUND_DETAIL = 'Appointment not found'

RESCHEDULE_FIELDS = ('doctor_id', 'appointment_date', 'start_time', 'end_time')


class SchedulingEngine:
    """Applies the booking rules against a ``SchedulingStore``.

    Holds no state between calls. ``strict_transitions`` and
    ``reject_invalid_time_ranges`` default to the values in ``backend.core.config``.
    """

    def __init__(
        self,
        store: SchedulingStore,
        strict_transitions: bool | None = None,
        reject_invalid_time_ranges: bool | None = None,
    ):
        self.store = store
        self.strict_transitions = (
            config.STRICT_STATUS_TRANSITIONS if strict_transitions is None else strict_transitions
        )
        self.reject_invalid_time_ranges = (
            config.REJECT_INVALID_TIME_RANGES if reject_invalid_time_ranges is None else reject_invalid_time_ranges
        )

    def _require_doctor(self, doctor_id: str):
        doctor = self.store.find_doctor_by_id(doctor_id)
        if doctor is None:
            raise NotFoundError(DOCTOR_NOT_FOUND_DETAIL)
        return doctor

    def _require_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.store.find_appointment_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError(APPOINTMENT_NOT_FOUND_DETAIL)
        return appointment

    def _check_time_range(self, start_time: str, end_time: str) -> None:
        if self.reject_invalid_time_ranges and rules.parse_clock(start_time) >= rules.parse_clock(end_time):
            raise InvalidTimeRangeError('Start time must be before end time.')

    def _ensure_no_conflict(
        self,
        doctor_id: str,
        appointment_date: date,
        start_time: str,
        end_time: str,
        exclude_id: str | None = None,
    ) -> None:
        existing = self.store.find_appointments(
            doctor_id,
            appointment_date,
            AppointmentStatus.SCHEDULED.value,
            exclude_id=exclude_id,
        )
        clash = rules.find_conflict(start_time, end_time, existing)
        if clash is not None:
            logger.info(
                'Rejected %s-%s for doctor %s on %s: clashes with appointment %s (%s-%s)',
                start_time, end_time, doctor_id, appointment_date.isoformat(),
                clash.id, clash.start_time, clash.end_time,
            )
            raise SchedulingConflictError(CONFLICT_DETAIL)

    def create_appointment(self, data: dict) -> Appointment:
        doctor_id = data['doctor_id']
        appointment_date = data['appointment_date']
        start_time = rules.normalize_clock(data['start_time'])
        end_time = rules.normalize_clock(data['end_time'])

        self._require_doctor(doctor_id)
        self._check_time_range(start_time, end_time)

        with self.store.exclusive_access(doctor_id, appointment_date):
            self._ensure_no_conflict(doctor_id, appointment_date, start_time, end_time)

            appointment = Appointment(
                **{
                    **data,
                    'start_time': start_time,
                    'end_time': end_time,
                    'status': AppointmentStatus.SCHEDULED.value,
                }
            )
            appointment = self.store.save_appointment(appointment)

        logger.info(
            'Booked appointment %s for doctor %s on %s %s-%s',
            appointment.id, doctor_id, appointment_date.isoformat(), start_time, end_time,
        )
        return appointment

    def update_appointment(self, appointment_id: str, changes: dict) -> Appointment:
        appointment = self._require_appointment(appointment_id)
        changes = {field: value for field, value in changes.items() if value is not None}

        for field in ('start_time', 'end_time'):
            if field in changes:
                changes[field] = rules.normalize_clock(changes[field])

        if 'status' in changes:
            changes['status'] = rules.validate_status_transition(
                appointment.status, changes['status'], self.strict_transitions
            ).value

        # Reopening a booking puts it back in the conflict set, so it is checked like a move.
        reopened = (
            changes.get('status') == AppointmentStatus.SCHEDULED.value
            and appointment.status != AppointmentStatus.SCHEDULED.value
        )
        if not reopened and not any(field in changes for field in RESCHEDULE_FIELDS):
            return self._apply(appointment, changes)

        doctor_id = changes.get('doctor_id', appointment.doctor_id)
        appointment_date = changes.get('appointment_date', appointment.appointment_date)
        start_time = changes.get('start_time', appointment.start_time)
        end_time = changes.get('end_time', appointment.end_time)

        if doctor_id != appointment.doctor_id:
            self._require_doctor(doctor_id)
        self._check_time_range(start_time, end_time)

        with self.store.exclusive_access(doctor_id, appointment_date):
            self._ensure_no_conflict(
                doctor_id,
                appointment_date,
                start_time,
                end_time,
                exclude_id=appointment.id,
            )
            return self._apply(appointment, changes)

    def _apply(self, appointment: Appointment, changes: dict) -> Appointment:
        for field, value in changes.items():
            setattr(appointment, field, value)
        return self.store.save_appointment(appointment)

    def update_appointment_status(self, appointment_id: str, status: str) -> Appointment:
        appointment = self._require_appointment(appointment_id)
        previous = appointment.status
        appointment.status = rules.validate_status_transition(previous, status, self.strict_transitions).value
        appointment = self.store.save_appointment(appointment)

        logger.info('Appointment %s moved from %s to %s', appointment.id, previous, appointment.status)
        return appointment

    def list_available_slots(self, doctor_id: str, appointment_date: date) -> list[str]:
        doctor = self._require_doctor(doctor_id)
        day_template = (doctor.availability or {}).get(rules.weekday_key(appointment_date))

        if not day_template or not day_template.get('available'):
            return []

        booked = self.store.find_appointments(doctor_id, appointment_date, AppointmentStatus.SCHEDULED.value)
        slots = rules.compute_free_slots(day_template, booked)

        logger.debug('Doctor %s has %d free slots on %s', doctor_id, len(slots), appointment_date.isoformat())
        return slots
