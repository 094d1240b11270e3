import os
from datetime import time

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_time(value: str | None, default: time) -> time:
    if not value:
        return default
    return time.fromisoformat(value.strip())


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agendly.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:3000"])

SLOT_INCREMENT_MINUTES = int(os.getenv("SLOT_INCREMENT_MINUTES", "15"))
DEFAULT_OPENING_TIME = _get_time(os.getenv("DEFAULT_OPENING_TIME"), time(9, 0))
DEFAULT_CLOSING_TIME = _get_time(os.getenv("DEFAULT_CLOSING_TIME"), time(18, 0))
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/Sao_Paulo")

ANY_STAFF_MAX_WORKERS = int(os.getenv("ANY_STAFF_MAX_WORKERS", "8"))

MIN_APPOINTMENT_DURATION = int(os.getenv("MIN_APPOINTMENT_DURATION", "15"))
MAX_APPOINTMENT_DURATION = int(os.getenv("MAX_APPOINTMENT_DURATION", "480"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and DATABASE_URL.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point to a real database in production.")
    if SLOT_INCREMENT_MINUTES <= 0:
        raise RuntimeError("SLOT_INCREMENT_MINUTES must be positive.")
