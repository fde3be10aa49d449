import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./salon.db")
REDIS_URL = os.getenv("REDIS_URL", "")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:3000"])

# Wall-clock zone used to read timezone-qualified appointment timestamps.
SALON_TIMEZONE = os.getenv("SALON_TIMEZONE", "Africa/Johannesburg")

DEFAULT_SLOT_INTERVAL_MINUTES = _get_int(os.getenv("DEFAULT_SLOT_INTERVAL_MINUTES"), 30)
DEFAULT_SERVICE_DURATION_MINUTES = _get_int(os.getenv("DEFAULT_SERVICE_DURATION_MINUTES"), 30)
BOOKING_WINDOW_MONTHS = _get_int(os.getenv("BOOKING_WINDOW_MONTHS"), 3)
BOOKING_PROGRESS_TTL_DAYS = _get_int(os.getenv("BOOKING_PROGRESS_TTL_DAYS"), 7)
LOOKUP_CACHE_TTL_SECONDS = _get_int(os.getenv("LOOKUP_CACHE_TTL_SECONDS"), 3600)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = _get_int(os.getenv("JWT_EXPIRES_MINUTES"), 60)


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if DEFAULT_SLOT_INTERVAL_MINUTES <= 0:
        raise RuntimeError("DEFAULT_SLOT_INTERVAL_MINUTES must be a positive number of minutes.")
