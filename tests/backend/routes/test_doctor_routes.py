from datetime import datetime

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from backend.models.doctor import Doctor, DoctorSpecialization, DoctorStatus, default_availability
from backend.routes.common import DATABASE_UNAVAILABLE_DETAIL
from backend.routes.doctor_routes import (
    CreateDoctorRequest,
    UpdateDoctorRequest,
    create_doctor,
    delete_doctor,
    get_doctor,
    list_available_doctors,
    list_doctors,
    update_doctor,
    update_doctor_status,
)


def _create_request(email: str = 'john.smith@clinic.com', **fields) -> CreateDoctorRequest:
    return CreateDoctorRequest(
        first_name=fields.pop('first_name', 'John'),
        last_name=fields.pop('last_name', 'Smith'),
        email=email,
        phone='+1234567890',
        specialization=fields.pop('specialization', 'General Practice'),
        gender='male',
        location=fields.pop('location', 'Room 101, Floor 1'),
        **fields,
    )


def _list(db, **filters):
    params = {
        'search': None,
        'specialization': None,
        'doctor_status': None,
        'location': None,
        'page': 1,
        'limit': 10,
    }
    params.update(filters)
    return list_doctors(db=db, **params)


def test_create_doctor_request_normalizes_availability_keys() -> None:
    template = {key.upper(): value for key, value in default_availability().items()}
    template['MONDAY'] = {'start': '8:00', 'end': '12:00:00', 'available': True}

    request = _create_request(availability=template)

    assert request.availability['monday'].start == '08:00'
    assert request.availability['monday'].end == '12:00'


def test_create_doctor_request_rejects_incomplete_template() -> None:
    template = default_availability()
    del template['sunday']

    with pytest.raises(ValidationError):
        _create_request(availability=template)


def test_create_doctor_request_rejects_unknown_specialization() -> None:
    with pytest.raises(ValidationError):
        _create_request(specialization='Astrology')


def test_create_doctor_defaults_to_weekday_template(db) -> None:
    response = create_doctor(_create_request(email=' John.Smith@Clinic.com '), db=db)

    assert response.email == 'john.smith@clinic.com'
    assert response.full_name == 'John Smith'
    assert response.availability['monday'].available is True
    assert response.availability['sunday'].available is False


def test_create_doctor_duplicate_email_returns_409(db, make_doctor) -> None:
    make_doctor(email='john.smith@clinic.com')

    with pytest.raises(HTTPException) as exception_info:
        create_doctor(_create_request(), db=db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'Doctor with this email already exists'


def test_list_doctors_filters_active_and_searches(db, make_doctor) -> None:
    make_doctor(email='sarah.smith@clinic.com')
    make_doctor(email='raj.patel@clinic.com', first_name='Raj', last_name='Patel', specialization='Dermatology')
    make_doctor(email='gone@clinic.com', first_name='Ann', last_name='Gone', is_active=False)

    everyone = _list(db)
    patel = _list(db, search='PATEL')
    dermatology = _list(db, specialization=DoctorSpecialization.DERMATOLOGY)

    assert everyone.total == 2
    assert [doctor.first_name for doctor in everyone.doctors] == ['Raj', 'Sarah']
    assert [doctor.email for doctor in patel.doctors] == ['raj.patel@clinic.com']
    assert dermatology.total == 1


def test_list_available_doctors_only_returns_available_status(db, make_doctor) -> None:
    make_doctor(email='sarah.smith@clinic.com')
    make_doctor(email='busy@clinic.com', first_name='Busy', status=DoctorStatus.BUSY.value)

    doctors = list_available_doctors(db=db)

    assert [doctor.email for doctor in doctors] == ['sarah.smith@clinic.com']


def test_get_doctor_missing_or_inactive_returns_404(db, make_doctor) -> None:
    inactive = make_doctor(is_active=False)

    for doctor_id in ('missing', inactive.id):
        with pytest.raises(HTTPException) as exception_info:
            get_doctor(doctor_id, db=db)
        assert exception_info.value.status_code == 404


def test_update_doctor_rejects_email_clash(db, make_doctor) -> None:
    make_doctor(email='taken@clinic.com')
    doctor = make_doctor(email='sarah.smith@clinic.com')

    with pytest.raises(HTTPException) as exception_info:
        update_doctor(doctor.id, UpdateDoctorRequest(email='taken@clinic.com'), db=db)

    assert exception_info.value.status_code == 409


def test_update_doctor_replaces_availability(db, make_doctor) -> None:
    doctor = make_doctor()
    template = default_availability()
    template['saturday'] = {'start': '09:00', 'end': '13:00', 'available': True}

    response = update_doctor(doctor.id, UpdateDoctorRequest(availability=template, location='Room 9'), db=db)

    assert response.location == 'Room 9'
    assert response.availability['saturday'].available is True


def test_update_doctor_status(db, make_doctor) -> None:
    doctor = make_doctor()

    response = update_doctor_status(doctor.id, new_status=DoctorStatus.OFF_DUTY, db=db)

    assert response.status == DoctorStatus.OFF_DUTY


def test_delete_doctor_is_soft(db, make_doctor) -> None:
    doctor = make_doctor()

    delete_doctor(doctor.id, db=db)

    stored = db.query(Doctor).filter(Doctor.id == doctor.id).first()
    assert stored is not None
    assert stored.is_active is False


def test_update_doctor_request_rejects_email_without_at_sign() -> None:
    with pytest.raises(ValidationError):
        UpdateDoctorRequest(email='nope')

    assert UpdateDoctorRequest(email=' Jane@Clinic.com ').email == 'jane@clinic.com'


def _failing_query(*args, **kwargs):
    raise OperationalError('SELECT 1', {}, Exception('database is locked'))


@pytest.mark.parametrize(
    'call',
    [
        lambda doctor_id, db: update_doctor(doctor_id, UpdateDoctorRequest(location='Room 5'), db=db),
        lambda doctor_id, db: update_doctor_status(doctor_id, new_status=DoctorStatus.BUSY, db=db),
        lambda doctor_id, db: delete_doctor(doctor_id, db=db),
        lambda doctor_id, db: get_doctor(doctor_id, db=db),
    ],
)
def test_doctor_lookup_database_failure_returns_503(db, make_doctor, monkeypatch: pytest.MonkeyPatch, call) -> None:
    doctor = make_doctor()
    monkeypatch.setattr(db, 'query', _failing_query)

    with pytest.raises(HTTPException) as exception_info:
        call(doctor.id, db)

    assert exception_info.value.status_code == 503
    assert exception_info.value.detail == DATABASE_UNAVAILABLE_DETAIL


@pytest.mark.parametrize(
    ('now', 'expected'),
    [
        (datetime(2026, 1, 5, 8, 0), 'Today at 09:00'),
        (datetime(2026, 1, 5, 12, 0), 'Now'),
        (datetime(2026, 1, 5, 17, 0), 'Not available today'),
        (datetime(2026, 1, 4, 12, 0), 'Not available today'),
    ],
)
def test_next_available_time(now: datetime, expected: str) -> None:
    doctor = Doctor(availability=default_availability())

    assert doctor.next_available_time(now) == expected
