# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every value has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKDECK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Real environment variables win over .env values.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


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

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Storage policy ----
    # False: log StorageError and continue; True: propagate to callers.
    strict_storage: bool

    # ---- Timer ----
    timer_reminder_seconds: float
    timer_tick_seconds: float
    reminders_enabled: bool
    reminder_title: str
    reminder_body: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdeck").strip() or "taskdeck"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdeck"))
        tasks_db_path = _env_path(_k("DB_PATH"), data_dir / "tasks.sqlite3")

        strict_storage = _env_bool(_k("STRICT_STORAGE"), False)

        timer_reminder_seconds = max(1.0, _env_float(_k("TIMER_REMINDER_SECONDS"), 2 * 60 * 60))
        timer_tick_seconds = max(0.05, _env_float(_k("TIMER_TICK_SECONDS"), 1.0))
        reminders_enabled = _env_bool(_k("REMINDERS_ENABLED"), True)
        reminder_title = _env(_k("REMINDER_TITLE"), "Timer")
        # Empty body -> derived from the threshold by the timer.
        reminder_body = _env(_k("REMINDER_BODY"), "")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            strict_storage=strict_storage,
            timer_reminder_seconds=timer_reminder_seconds,
            timer_tick_seconds=timer_tick_seconds,
            reminders_enabled=reminders_enabled,
            reminder_title=reminder_title,
            reminder_body=reminder_body,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
