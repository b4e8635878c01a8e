from datetime import date, datetime

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from backend.auth.dependencies import get_current_user
from backend.core import config
from backend.database import get_db
from backend.models.appointment import Appointment, AppointmentStatus, AppointmentType
from backend.routes.common import (
    database_unavailable,
    ensure_database_ready,
    paginate,
    scheduling_http_error,
)
from backend.scheduling.engine import APPOINTMENT_NOT_FOUND_DETAIL, SchedulingEngine
from backend.scheduling.errors import SchedulingError
from backend.scheduling.rules import normalize_clock
from backend.scheduling.store import SqlAlchemySchedulingStore, booking_locks

router = APIRouter(tags=['appointments'], dependencies=[Depends(get_current_user)])

MAX_NOTES_LENGTH = 2000


def _clean_clock(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return normalize_clock(value)
    except ValueError as exc:
        raise ValueError('Times must use the 24-hour HH:MM format.') from exc


def _clean_required_text(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        raise ValueError('This field is required.')
    return normalized


def _clean_optional_text(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_NOTES_LENGTH:
        raise ValueError(f'Text fields must be {MAX_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    patient_name: str
    patient_phone: str
    patient_email: str | None = None
    patient_notes: str | None = None
    appointment_date: date
    start_time: str
    end_time: str
    type: AppointmentType = AppointmentType.CONSULTATION
    notes: str | None = None
    is_urgent: bool = False
    doctor_id: str

    @field_validator('patient_name', 'patient_phone', 'doctor_id')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        return _clean_required_text(value)

    @field_validator('patient_email')
    @classmethod
    def validate_patient_email(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip().lower()

    @field_validator('patient_notes', 'notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _clean_optional_text(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_clock(cls, value: str) -> str:
        return _clean_clock(value)


class UpdateAppointmentRequest(BaseModel):
    patient_name: str | None = None
    patient_phone: str | None = None
    patient_email: str | None = None
    patient_notes: str | None = None
    appointment_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    status: AppointmentStatus | None = None
    type: AppointmentType | None = None
    notes: str | None = None
    is_urgent: bool | None = None
    doctor_id: str | None = None

    @field_validator('patient_name', 'patient_phone', 'doctor_id')
    @classmethod
    def validate_required_text(cls, value: str | None) -> str | None:
        return _clean_required_text(value)

    @field_validator('patient_notes', 'notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _clean_optional_text(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_clock(cls, value: str | None) -> str | None:
        return _clean_clock(value)


class AppointmentResponse(BaseModel):
    id: str
    patient_name: str
    patient_phone: str
    patient_email: str | None = None
    patient_notes: str | None = None
    appointment_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    status: AppointmentStatus
    type: AppointmentType
    notes: str | None = None
    is_urgent: bool
    doctor_id: str
    doctor_name: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    total: int


def get_scheduling_engine(db: Session = Depends(get_db)) -> SchedulingEngine:
    locks = booking_locks if config.SERIALIZE_BOOKINGS else None
    return SchedulingEngine(SqlAlchemySchedulingStore(db, locks=locks))


def _enum_values(changes: dict) -> dict:
    return {key: value.value if isinstance(value, (AppointmentStatus, AppointmentType)) else value
            for key, value in changes.items()}


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    ensure_database_ready()

    try:
        return engine.create_appointment(_enum_values(data.model_dump()))
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        engine.store.db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=AppointmentListResponse)
def list_appointments(
    patient_name: str | None = Query(default=None),
    doctor_id: str | None = Query(default=None),
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    appointment_date: date | None = Query(default=None, alias='date'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Appointment).options(joinedload(Appointment.doctor))

        if patient_name and patient_name.strip():
            query = query.filter(Appointment.patient_name.ilike(f'%{patient_name.strip()}%'))
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if appointment_status is not None:
            query = query.filter(Appointment.status == appointment_status.value)
        if appointment_date is not None:
            query = query.filter(Appointment.appointment_date == appointment_date)

        total = query.count()
        offset, page_size = paginate(page, limit)
        appointments = query.order_by(
            Appointment.appointment_date.asc(),
            Appointment.start_time.asc(),
        ).offset(offset).limit(page_size).all()

        return AppointmentListResponse(
            appointments=[AppointmentResponse.model_validate(appointment) for appointment in appointments],
            total=total,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/slots/{doctor_id}/{slot_date}', response_model=list[str])
def list_available_slots(
    doctor_id: str,
    slot_date: date,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    ensure_database_ready()

    try:
        return engine.list_available_slots(doctor_id, slot_date)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(appointment_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=APPOINTMENT_NOT_FOUND_DETAIL)

    return appointment


@router.patch('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentRequest,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    ensure_database_ready()

    try:
        return engine.update_appointment(appointment_id, _enum_values(data.model_dump(exclude_unset=True)))
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        engine.store.db.rollback()
        raise database_unavailable() from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    new_status: AppointmentStatus = Body(..., embed=True, alias='status'),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    ensure_database_ready()

    try:
        return engine.update_appointment_status(appointment_id, new_status.value)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        engine.store.db.rollback()
        raise database_unavailable() from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(appointment_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=APPOINTMENT_NOT_FOUND_DETAIL)

        db.delete(appointment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
