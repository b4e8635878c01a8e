import os
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-that-is-long-enough-for-hs256')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.doctor import Doctor, default_availability  # noqa: E402
from backend.models.queue_item import QueueItem  # noqa: E402
from backend.models.user import User  # noqa: E402

MONDAY = date(2026, 1, 5)
SUNDAY = date(2026, 1, 4)


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    tables = [User.__table__, Doctor.__table__, Appointment.__table__, QueueItem.__table__]
    Base.metadata.create_all(bind=engine, tables=tables)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(tables)))


@pytest.fixture
def make_doctor(db):
    def _make_doctor(email: str = 'sarah.smith@clinic.com', availability: dict | None = None, **fields) -> Doctor:
        doctor = Doctor(
            first_name=fields.pop('first_name', 'Sarah'),
            last_name=fields.pop('last_name', 'Smith'),
            email=email,
            phone=fields.pop('phone', '+1234567890'),
            specialization=fields.pop('specialization', 'General Practice'),
            gender=fields.pop('gender', 'female'),
            location=fields.pop('location', 'Room 101'),
            availability=availability or default_availability(),
            **fields,
        )
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return _make_doctor


@pytest.fixture
def make_appointment(db):
    def _make_appointment(doctor: Doctor, start_time: str, end_time: str, **fields) -> Appointment:
        appointment = Appointment(
            patient_name=fields.pop('patient_name', 'Alice Brown'),
            patient_phone=fields.pop('patient_phone', '+1234567890'),
            appointment_date=fields.pop('appointment_date', MONDAY),
            start_time=start_time,
            end_time=end_time,
            status=fields.pop('status', 'scheduled'),
            type=fields.pop('type', 'consultation'),
            doctor_id=doctor.id,
            **fields,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make_appointment
