import os

from dotenv import load_dotenv

load_dotenv()



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "1440"))

# Scheduling switches. All default to the permissive behaviour.
STRICT_STATUS_TRANSITIONS = _get_bool(os.getenv("STRICT_STATUS_TRANSITIONS"), default=False)
REJECT_INVALID_TIME_RANGES = _get_bool(os.getenv("REJECT_INVALID_TIME_RANGES"), default=False)
SERIALIZE_BOOKINGS = _get_bool(os.getenv("SERIALIZE_BOOKINGS"), default=False)

SEED_SAMPLE_DATA = _get_bool(os.getenv("SEED_SAMPLE_DATA"), default=False)
DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@clinic.com")
DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if APP_ENV.lower() == "production" and SEED_SAMPLE_DATA:
        raise RuntimeError("SEED_SAMPLE_DATA must not be enabled in production.")
