# src/uptier/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time: every value has a default.
- Notification preferences are also exposed as a small mutable object,
  because the user can toggle them while the scheduler is running.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "UPTIER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Front end ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Notifications ----
    notifications_enabled: bool
    default_reminder_minutes: int
    snooze_duration_minutes: int
    sound_enabled: bool

    # ---- Scheduler tuning ----
    reminder_poll_interval_seconds: float
    reminder_initial_delay_seconds: float

    # ---- Deadline risk ----
    risk_lookahead_days: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "UpTier").strip() or "UpTier"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/uptier"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "uptier.sqlite3")

        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        default_reminder_minutes = max(0, _env_int(_k("DEFAULT_REMINDER_MINUTES"), 15))
        snooze_duration_minutes = max(1, _env_int(_k("SNOOZE_DURATION_MINUTES"), 10))
        sound_enabled = _env_bool(_k("SOUND_ENABLED"), True)

        reminder_poll_interval_seconds = _env_float(_k("REMINDER_POLL_INTERVAL_SECONDS"), 60.0)
        reminder_initial_delay_seconds = _env_float(_k("REMINDER_INITIAL_DELAY_SECONDS"), 5.0)

        risk_lookahead_days = max(0, _env_int(_k("RISK_LOOKAHEAD_DAYS"), 7))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            notifications_enabled=notifications_enabled,
            default_reminder_minutes=default_reminder_minutes,
            snooze_duration_minutes=snooze_duration_minutes,
            sound_enabled=sound_enabled,
            reminder_poll_interval_seconds=reminder_poll_interval_seconds,
            reminder_initial_delay_seconds=reminder_initial_delay_seconds,
            risk_lookahead_days=risk_lookahead_days,
        )


@dataclass(slots=True)
class NotificationSettings:
    """
    Notification preferences as the reminder scheduler sees them.

    Read fresh on every poll cycle / snooze, so toggling a field at runtime
    takes effect on the next call.
    """

    enabled: bool = True
    default_reminder_minutes: int = 15
    snooze_duration_minutes: int = 10
    sound_enabled: bool = True

    @classmethod
    def from_settings(cls, settings) -> NotificationSettings:
        return cls(
            enabled=bool(getattr(settings, "notifications_enabled", True)),
            default_reminder_minutes=int(getattr(settings, "default_reminder_minutes", 15)),
            snooze_duration_minutes=int(getattr(settings, "snooze_duration_minutes", 10)),
            sound_enabled=bool(getattr(settings, "sound_enabled", True)),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
