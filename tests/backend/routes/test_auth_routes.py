import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import ValidationError

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_user
from backend.auth.passwords import hash_password, verify_password
from backend.core import config
from backend.models.user import User
from backend.routes.auth_routes import (
    LoginRequest,
    RegisterRequest,
    create_default_admin,
    login,
    register,
)


def _register(db, email: str = 'nurse@clinic.com', password: str = 'secret123'):
    return register(
        RegisterRequest(email=email, password=password, first_name='Nina', last_name='Nurse'),
        db=db,
    )


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_hash_password_round_trip() -> None:
    hashed = hash_password('secret123')

    assert hashed != 'secret123'
    assert verify_password('secret123', hashed) is True
    assert verify_password('wrong', hashed) is False
    assert verify_password('secret123', '') is False


def test_register_request_rejects_short_password() -> None:
    with pytest.raises(ValidationError):
        RegisterRequest(email='a@clinic.com', password='123', first_name='A', last_name='B')


def test_register_returns_token_for_new_staff_user(db) -> None:
    response = _register(db, email=' Nurse@Clinic.com ')

    assert response.user.email == 'nurse@clinic.com'
    assert response.user.role == 'staff'
    payload = jwt_handler.decode_access_token(response.access_token)
    assert payload['sub'] == response.user.id
    assert payload['role'] == 'staff'


def test_register_duplicate_email_returns_409(db) -> None:
    _register(db)

    with pytest.raises(HTTPException) as exception_info:
        _register(db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'User with this email already exists'


def test_login_with_valid_credentials(db) -> None:
    _register(db)

    response = login(LoginRequest(email='NURSE@clinic.com', password='secret123'), db=db)

    assert response.token_type == 'bearer'
    assert response.user.email == 'nurse@clinic.com'


@pytest.mark.parametrize(
    ('email', 'password'),
    [('nurse@clinic.com', 'wrong-password'), ('nobody@clinic.com', 'secret123')],
)
def test_login_rejects_bad_credentials(db, email: str, password: str) -> None:
    _register(db)

    with pytest.raises(HTTPException) as exception_info:
        login(LoginRequest(email=email, password=password), db=db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid credentials'


def test_login_rejects_inactive_user(db) -> None:
    _register(db)
    user = db.query(User).filter(User.email == 'nurse@clinic.com').first()
    user.is_active = False
    db.commit()

    with pytest.raises(HTTPException) as exception_info:
        login(LoginRequest(email='nurse@clinic.com', password='secret123'), db=db)

    assert exception_info.value.status_code == 401


def test_get_current_user_resolves_token_subject(db) -> None:
    response = _register(db)

    user = get_current_user(credentials=_bearer(response.access_token), db=db)

    assert user.email == 'nurse@clinic.com'


def test_get_current_user_rejects_garbage_token(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_bearer('not-a-jwt'), db=db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_user_rejects_unknown_subject(db) -> None:
    token = jwt_handler.create_access_token(subject='ghost')

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_bearer(token), db=db)

    assert exception_info.value.detail == 'User not found'


def test_create_default_admin_is_idempotent(db) -> None:
    create_default_admin(db)
    create_default_admin(db)

    admins = db.query(User).filter(User.email == config.DEFAULT_ADMIN_EMAIL).all()
    assert len(admins) == 1
    assert admins[0].role == 'admin'
