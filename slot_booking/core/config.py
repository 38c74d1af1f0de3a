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
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:4200"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Slot generation policy bounds, in minutes.
SLOT_MIN_DURATION_MINUTES = int(os.getenv("SLOT_MIN_DURATION_MINUTES", "15"))
SLOT_MAX_DURATION_MINUTES = int(os.getenv("SLOT_MAX_DURATION_MINUTES", "480"))
SLOT_MAX_BREAK_MINUTES = int(os.getenv("SLOT_MAX_BREAK_MINUTES", "60"))

# Fixed grid used when an admin generates slots without an explicit window.
DEFAULT_FIRST_SLOT_HOUR = int(os.getenv("DEFAULT_FIRST_SLOT_HOUR", "9"))
DEFAULT_SLOT_COUNT = int(os.getenv("DEFAULT_SLOT_COUNT", "8"))

AVAILABLE_DAYS_WINDOW = int(os.getenv("AVAILABLE_DAYS_WINDOW", "14"))
MAX_AVAILABLE_DAYS_WINDOW = int(os.getenv("MAX_AVAILABLE_DAYS_WINDOW", "60"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_MIN_DURATION_MINUTES <= 0 or SLOT_MIN_DURATION_MINUTES > SLOT_MAX_DURATION_MINUTES:
        raise RuntimeError("SLOT_MIN_DURATION_MINUTES must be positive and not exceed SLOT_MAX_DURATION_MINUTES.")
    if DEFAULT_FIRST_SLOT_HOUR < 0 or DEFAULT_SLOT_COUNT < 1 or DEFAULT_FIRST_SLOT_HOUR + DEFAULT_SLOT_COUNT > 23:
        raise RuntimeError("The default slot grid must end before midnight.")
