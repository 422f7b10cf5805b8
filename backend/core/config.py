import os
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator, model_validator


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookings.db")
CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["*"])

SLOT_MINUTES = _get_int("SLOT_MINUTES", 20)
START_HOUR = _get_int("START_HOUR", 10)
END_HOUR = _get_int("END_HOUR", 17)
TIMEZONE = os.getenv("TIMEZONE", "Asia/Kolkata")
MEETING_URL = os.getenv("MEETING_URL", "https://meet.google.com")

GCAL_CALENDAR_ID = os.getenv("GCAL_CALENDAR_ID", "")
GCAL_SERVICE_ACCOUNT_FILE = os.getenv("GCAL_SERVICE_ACCOUNT_FILE", "")
GCAL_TOKEN_FILE = os.getenv("GCAL_TOKEN_FILE", "token.json")
GCAL_SEND_UPDATES = _get_bool(os.getenv("GCAL_SEND_UPDATES"), default=True)
EVENT_SUMMARY = os.getenv("EVENT_SUMMARY", "Discovery Call")

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = _get_int("SMTP_PORT", 587)
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
FROM_EMAIL = os.getenv("FROM_EMAIL", "") or SMTP_USER
TO_EMAIL = os.getenv("TO_EMAIL", "") or SMTP_USER
SENDER_NAME = os.getenv("SENDER_NAME", "Portfolio")
INVITE_UID_DOMAIN = os.getenv("INVITE_UID_DOMAIN", "portfolio")

INTEGRATION_TIMEOUT_SECONDS = _get_int("INTEGRATION_TIMEOUT_SECONDS", 10)


class SchedulingConfig(BaseModel):
    """Scheduling window shared by slot generation and reservations."""

    slot_duration_minutes: int = 20
    day_start_hour: int = 10
    day_end_hour: int = 17
    timezone: str = "Asia/Kolkata"
    default_meeting_link: str = "https://meet.google.com"

    class Config:
        frozen = True

    @field_validator("slot_duration_minutes")
    @classmethod
    def validate_slot_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Slot duration must be a positive number of minutes.")
        return value

    @field_validator("day_start_hour")
    @classmethod
    def validate_day_start_hour(cls, value: int) -> int:
        if not 0 <= value <= 23:
            raise ValueError("Day start hour must be between 0 and 23.")
        return value

    @field_validator("day_end_hour")
    @classmethod
    def validate_day_end_hour(cls, value: int) -> int:
        if not 1 <= value <= 24:
            raise ValueError("Day end hour must be between 1 and 24.")
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        normalized = value.strip()
        try:
            ZoneInfo(normalized)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return normalized

    @model_validator(mode="after")
    def validate_window(self) -> "SchedulingConfig":
        if self.day_start_hour >= self.day_end_hour:
            raise ValueError("Day start hour must be before day end hour.")
        return self

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_scheduling_config() -> SchedulingConfig:
    return SchedulingConfig(
        slot_duration_minutes=SLOT_MINUTES,
        day_start_hour=START_HOUR,
        day_end_hour=END_HOUR,
        timezone=TIMEZONE,
        default_meeting_link=MEETING_URL,
    )


@lru_cache
def get_scheduling_config() -> SchedulingConfig:
    return load_scheduling_config()


def validate_runtime_config() -> None:
    try:
        get_scheduling_config()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid scheduling configuration: {exc}") from exc

    if APP_ENV.lower() == "production" and DATABASE_URL.startswith("sqlite:///./"):
        raise RuntimeError("DATABASE_URL must point at a durable database in production.")
