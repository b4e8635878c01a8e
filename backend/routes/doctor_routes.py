from datetime import datetime

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.database import get_db
from backend.models.doctor import (
    WEEKDAYS,
    Doctor,
    DoctorGender,
    DoctorSpecialization,
    DoctorStatus,
    default_availability,
)
from backend.routes.common import database_unavailable, paginate
from backend.scheduling.engine import DOCTOR_NOT_FOUND_DETAIL
from backend.scheduling.rules import normalize_clock

router = APIRouter(tags=['doctors'], dependencies=[Depends(get_current_user)])

DUPLICATE_EMAIL_DETAIL = 'Doctor with this email already exists'


class DayAvailability(BaseModel):
    start: str
    end: str
    available: bool

    @field_validator('start', 'end')
    @classmethod
    def validate_clock(cls, value: str) -> str:
        try:
            return normalize_clock(value)
        except ValueError as exc:
            raise ValueError('Times must use the 24-hour HH:MM format.') from exc


def _validate_template(value: dict[str, DayAvailability] | None) -> dict[str, DayAvailability] | None:
    if value is None:
        return None

    normalized = {weekday.strip().lower(): day for weekday, day in value.items()}
    unknown = set(normalized) - set(WEEKDAYS)
    if unknown:
        raise ValueError(f'Unknown weekday keys: {", ".join(sorted(unknown))}.')

    missing = set(WEEKDAYS) - set(normalized)
    if missing:
        raise ValueError(f'Availability is missing: {", ".join(sorted(missing))}.')

    return normalized


def _template_to_json(value: dict[str, DayAvailability]) -> dict:
    return {weekday: day.model_dump() for weekday, day in value.items()}


def _clean_email(value: str) -> str:
    normalized = value.strip().lower()
    if '@' not in normalized:
        raise ValueError('A valid email address is required.')
    return normalized


class CreateDoctorRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: str
    specialization: DoctorSpecialization
    gender: DoctorGender
    location: str
    bio: str | None = None
    status: DoctorStatus = DoctorStatus.AVAILABLE
    availability: dict[str, DayAvailability] | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _clean_email(value)

    @field_validator('availability')
    @classmethod
    def validate_availability(cls, value):
        return _validate_template(value)


class UpdateDoctorRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    specialization: DoctorSpecialization | None = None
    gender: DoctorGender | None = None
    location: str | None = None
    bio: str | None = None
    status: DoctorStatus | None = None
    availability: dict[str, DayAvailability] | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _clean_email(value)

    @field_validator('availability')
    @classmethod
    def validate_availability(cls, value):
        return _validate_template(value)


class DoctorResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str
    specialization: str
    gender: str
    location: str
    status: DoctorStatus
    availability: dict[str, DayAvailability]
    bio: str | None = None
    is_active: bool
    next_available_time: str
    created_at: datetime
    updated_at: datetime


class DoctorListResponse(BaseModel):
    doctors: list[DoctorResponse]
    total: int


def to_response(doctor: Doctor, now: datetime | None = None) -> DoctorResponse:
    return DoctorResponse(
        id=doctor.id,
        first_name=doctor.first_name,
        last_name=doctor.last_name,
        full_name=doctor.full_name,
        email=doctor.email,
        phone=doctor.phone,
        specialization=doctor.specialization,
        gender=doctor.gender,
        location=doctor.location,
        status=doctor.status,
        availability=doctor.availability,
        bio=doctor.bio,
        is_active=doctor.is_active,
        next_available_time=doctor.next_available_time(now or datetime.now()),
        created_at=doctor.created_at,
        updated_at=doctor.updated_at,
    )


def get_active_doctor(doctor_id: str, db: Session) -> Doctor:
    try:
        doctor = db.query(Doctor).filter(Doctor.id == doctor_id, Doctor.is_active.is_(True)).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    if doctor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=DOCTOR_NOT_FOUND_DETAIL)
    return doctor


@router.post('', response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
def create_doctor(data: CreateDoctorRequest, db: Session = Depends(get_db)):
    try:
        if db.query(Doctor).filter(Doctor.email == data.email).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL_DETAIL)

        doctor = Doctor(
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            email=data.email,
            phone=data.phone.strip(),
            specialization=data.specialization.value,
            gender=data.gender.value,
            location=data.location.strip(),
            bio=data.bio,
            status=data.status.value,
            availability=_template_to_json(data.availability) if data.availability else default_availability(),
        )
        db.add(doctor)
        db.commit()
        db.refresh(doctor)

        return to_response(doctor)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=DoctorListResponse)
def list_doctors(
    search: str | None = Query(default=None),
    specialization: DoctorSpecialization | None = Query(default=None),
    doctor_status: DoctorStatus | None = Query(default=None, alias='status'),
    location: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Doctor).filter(Doctor.is_active.is_(True))

        if search and search.strip():
            pattern = f'%{search.strip()}%'
            query = query.filter(
                or_(
                    Doctor.first_name.ilike(pattern),
                    Doctor.last_name.ilike(pattern),
                    Doctor.email.ilike(pattern),
                )
            )
        if specialization is not None:
            query = query.filter(Doctor.specialization == specialization.value)
        if doctor_status is not None:
            query = query.filter(Doctor.status == doctor_status.value)
        if location and location.strip():
            query = query.filter(Doctor.location.ilike(f'%{location.strip()}%'))

        total = query.count()
        offset, page_size = paginate(page, limit)
        doctors = query.order_by(Doctor.first_name.asc()).offset(offset).limit(page_size).all()

        now = datetime.now()
        return DoctorListResponse(doctors=[to_response(doctor, now) for doctor in doctors], total=total)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/available', response_model=list[DoctorResponse])
def list_available_doctors(db: Session = Depends(get_db)):
    try:
        doctors = db.query(Doctor).filter(
            Doctor.status == DoctorStatus.AVAILABLE.value,
            Doctor.is_active.is_(True),
        ).order_by(Doctor.first_name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    now = datetime.now()
    return [to_response(doctor, now) for doctor in doctors]


@router.get('/{doctor_id}', response_model=DoctorResponse)
def get_doctor(doctor_id: str, db: Session = Depends(get_db)):
    return to_response(get_active_doctor(doctor_id, db))


@router.patch('/{doctor_id}', response_model=DoctorResponse)
def update_doctor(doctor_id: str, data: UpdateDoctorRequest, db: Session = Depends(get_db)):
    doctor = get_active_doctor(doctor_id, db)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    try:
        if 'email' in changes and changes['email'] != doctor.email:
            if db.query(Doctor).filter(Doctor.email == changes['email']).first():
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL_DETAIL)

        if 'availability' in changes:
            changes['availability'] = _template_to_json(data.availability)

        for field, value in changes.items():
            setattr(doctor, field, value.value if isinstance(value, (DoctorSpecialization, DoctorGender, DoctorStatus)) else value)

        db.commit()
        db.refresh(doctor)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return to_response(doctor)


@router.patch('/{doctor_id}/status', response_model=DoctorResponse)
def update_doctor_status(
    doctor_id: str,
    new_status: DoctorStatus = Body(..., embed=True, alias='status'),
    db: Session = Depends(get_db),
):
    doctor = get_active_doctor(doctor_id, db)

    try:
        doctor.status = new_status.value
        db.commit()
        db.refresh(doctor)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return to_response(doctor)


@router.delete('/{doctor_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_doctor(doctor_id: str, db: Session = Depends(get_db)):
    """Soft delete: the doctor disappears from lookups but keeps their bookings."""
    doctor = get_active_doctor(doctor_id, db)

    try:
        doctor.is_active = False
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
