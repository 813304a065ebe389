# backend/shiftwatch/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///shiftwatch.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Missed-shift watchdog
    GRACE_PERIOD_MINUTES = int(os.environ.get("GRACE_PERIOD_MINUTES", "15"))
    WATCHDOG_INTERVAL_SECONDS = float(os.environ.get("WATCHDOG_INTERVAL_SECONDS", "60"))
    WATCHDOG_ENABLED = _env_bool("WATCHDOG_ENABLED", False)

    # Timekeeping
    OVERTIME_THRESHOLD_HOURS = float(os.environ.get("OVERTIME_THRESHOLD_HOURS", "8"))
    BREAK_WARNING_LEAD_MINUTES = int(os.environ.get("BREAK_WARNING_LEAD_MINUTES", "5"))
    TIMER_RESTORE_ON_START = _env_bool("TIMER_RESTORE_ON_START", True)
