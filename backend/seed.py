"""Sample data for local development. Existing rows are left untouched."""

import logging
from datetime import date, datetime

from sqlalchemy.orm import Session

from backend.models.appointment import Appointment, AppointmentStatus, AppointmentType
from backend.models.doctor import Doctor, DoctorStatus
from backend.models.queue_item import QueueItem, QueuePriority, QueueStatus
from backend.routes.auth_routes import create_default_admin

logger = logging.getLogger(__name__)


def _week(weekday_start: str, weekday_end: str, saturday: tuple[str, str] | None) -> dict:
    template = {
        weekday: {'start': weekday_start, 'end': weekday_end, 'available': True}
        for weekday in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday')
    }
    if saturday:
        template['saturday'] = {'start': saturday[0], 'end': saturday[1], 'available': True}
    else:
        template['saturday'] = {'start': '00:00', 'end': '00:00', 'available': False}
    template['sunday'] = {'start': '00:00', 'end': '00:00', 'available': False}
    return template


SAMPLE_DOCTORS = [
    {
        'first_name': 'Sarah',
        'last_name': 'Smith',
        'email': 'sarah.smith@clinic.com',
        'phone': '+1234567890',
        'specialization': 'General Practice',
        'gender': 'female',
        'location': 'Room 101, Floor 1',
        'status': DoctorStatus.AVAILABLE.value,
        'bio': 'General practitioner with 10 years of experience.',
        'availability': _week('09:00', '17:00', ('09:00', '13:00')),
    },
    {
        'first_name': 'Michael',
        'last_name': 'Johnson',
        'email': 'michael.johnson@clinic.com',
        'phone': '+1234567891',
        'specialization': 'Pediatrics',
        'gender': 'male',
        'location': 'Room 102, Floor 1',
        'status': DoctorStatus.BUSY.value,
        'bio': 'Pediatric care, 8 years of experience.',
        'availability': _week('08:00', '16:00', ('08:00', '12:00')),
    },
    {
        'first_name': 'Emily',
        'last_name': 'Lee',
        'email': 'emily.lee@clinic.com',
        'phone': '+1234567892',
        'specialization': 'Cardiology',
        'gender': 'female',
        'location': 'Room 201, Floor 2',
        'status': DoctorStatus.OFF_DUTY.value,
        'bio': 'Cardiologist.',
        'availability': _week('10:00', '18:00', None),
    },
    {
        'first_name': 'Raj',
        'last_name': 'Patel',
        'email': 'raj.patel@clinic.com',
        'phone': '+1234567893',
        'specialization': 'Dermatology',
        'gender': 'male',
        'location': 'Room 103, Floor 1',
        'status': DoctorStatus.AVAILABLE.value,
        'bio': 'Dermatologist.',
        'availability': _week('09:00', '17:00', ('09:00', '13:00')),
    },
]

# (patient, phone, email, doctor email, start, end, type)
SAMPLE_APPOINTMENTS = [
    ('Alice Brown', '+1234567890', 'alice.brown@email.com', 'sarah.smith@clinic.com',
     '10:00', '10:30', AppointmentType.CONSULTATION),
    ('Charlie Davis', '+1234567891', 'charlie.davis@email.com', 'michael.johnson@clinic.com',
     '11:30', '12:00', AppointmentType.FOLLOW_UP),
    ('Eva White', '+1234567892', 'eva.white@email.com', 'emily.lee@clinic.com',
     '14:00', '14:30', AppointmentType.ROUTINE_CHECKUP),
]

SAMPLE_QUEUE = [
    ('John Doe', '+1234567890', 'Headache and fever', QueuePriority.NORMAL, QueueStatus.WAITING, 15),
    ('Jane Smith', '+1234567891', 'Chest pain', QueuePriority.URGENT, QueueStatus.WITH_DOCTOR, 0),
    ('Bob Johnson', '+1234567892', 'Severe bleeding', QueuePriority.EMERGENCY, QueueStatus.WAITING, 5),
]


def seed_doctors(db: Session) -> None:
    for doctor_data in SAMPLE_DOCTORS:
        if db.query(Doctor).filter(Doctor.email == doctor_data['email']).first() is None:
            db.add(Doctor(**doctor_data))
    db.commit()


def seed_appointments(db: Session, appointment_date: date) -> None:
    for patient, phone, email, doctor_email, start, end, appointment_type in SAMPLE_APPOINTMENTS:
        existing = db.query(Appointment).filter(
            Appointment.patient_name == patient,
            Appointment.appointment_date == appointment_date,
        ).first()
        doctor = db.query(Doctor).filter(Doctor.email == doctor_email).first()
        if existing is not None or doctor is None:
            continue

        db.add(
            Appointment(
                patient_name=patient,
                patient_phone=phone,
                patient_email=email,
                appointment_date=appointment_date,
                start_time=start,
                end_time=end,
                type=appointment_type.value,
                status=AppointmentStatus.SCHEDULED.value,
                doctor_id=doctor.id,
            )
        )
    db.commit()


def seed_queue(db: Session) -> None:
    now = datetime.now()
    for patient, phone, symptoms, priority, queue_status, wait in SAMPLE_QUEUE:
        if db.query(QueueItem).filter(QueueItem.patient_name == patient).first() is not None:
            continue

        db.add(
            QueueItem(
                patient_name=patient,
                patient_phone=phone,
                symptoms=symptoms,
                priority=priority.value,
                status=queue_status.value,
                estimated_wait_time=wait,
                arrival_time=now,
                called_time=now if queue_status == QueueStatus.WITH_DOCTOR else None,
            )
        )
    db.commit()


def seed_sample_data(db: Session, today: date | None = None) -> None:
    create_default_admin(db)
    seed_doctors(db)
    seed_appointments(db, today or date.today())
    seed_queue(db)
    logger.info('Sample doctors, appointments and queue items created')
