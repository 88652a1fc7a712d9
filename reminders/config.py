"""Application configuration."""

from __future__ import annotations

from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from reminders.triggers import DEFAULT_TRIGGERS, TriggerTime

TRANSPORTS = ("sqlite", "memory")


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    backend_url: str = Field(default="http://localhost:5000", alias="BACKEND_URL")
    profile_city: str = Field(default="", alias="PROFILE_CITY")
    timezone: str = Field(default="Europe/Paris", alias="TIMEZONE")
    database_path: Path = Field(default=Path("reminders.db"), alias="DATABASE_PATH")
    # "sqlite" keeps a persisted on-device queue, "memory" lives with the process.
    notification_transport: str = Field(default="sqlite", alias="NOTIFICATION_TRANSPORT")
    request_timeout_seconds: float = Field(default=15.0, alias="REQUEST_TIMEOUT_SECONDS")
    delivery_poll_interval_seconds: float = Field(default=5.0, alias="DELIVERY_POLL_INTERVAL_SECONDS")
    reschedule_interval_seconds: float = Field(default=900.0, alias="RESCHEDULE_INTERVAL_SECONDS")
    morning_time: str = Field(default="07:30", alias="MORNING_TIME")
    j1_time: str = Field(default="18:00", alias="J1_TIME")
    evening_time: str = Field(default="19:00", alias="EVENING_TIME")
    overdue_time: str = Field(default="09:00", alias="OVERDUE_TIME")
    rain_time: str = Field(default="07:45", alias="RAIN_TIME")
    weekend_time: str = Field(default="09:30", alias="WEEKEND_TIME")


def load_settings() -> Settings:
    """Load and validate settings."""

    settings = Settings()
    if settings.notification_transport not in TRANSPORTS:
        raise ValueError(
            f"Unknown NOTIFICATION_TRANSPORT {settings.notification_transport!r} "
            f"(expected one of {', '.join(TRANSPORTS)})"
        )
    trigger_times(settings)
    return settings


def local_zone(settings: Settings) -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def trigger_times(settings: Settings) -> dict[str, TriggerTime]:
    """Return per-kind trigger clocks, applying any HH:MM overrides.

    The weekend digest keeps its Saturday anchor; only its clock time moves.
    """
    return {
        "morning": TriggerTime.parse(settings.morning_time),
        "j1": TriggerTime.parse(settings.j1_time),
        "evening": TriggerTime.parse(settings.evening_time),
        "overdue": TriggerTime.parse(settings.overdue_time),
        "rain_children": TriggerTime.parse(settings.rain_time),
        "weekend_simple": TriggerTime.parse(
            settings.weekend_time, weekday=DEFAULT_TRIGGERS["weekend_simple"].weekday
        ),
    }
