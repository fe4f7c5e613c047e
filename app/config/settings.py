"""Runtime tunables read from the environment."""

from __future__ import annotations

import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

DEFAULT_TIMEZONE = "America/Chicago"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
RESTAURANT_TIMEZONE = os.getenv("RESTAURANT_TIMEZONE", DEFAULT_TIMEZONE)
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL")
NOTIFICATION_SENDER = os.getenv("NOTIFICATION_SENDER", "no-reply@restaurants.local")
ADMIN_SECRET = os.getenv("ADMIN_SECRET")


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


NOTIFICATION_TIMEOUT_SECONDS = _float_env("NOTIFICATION_TIMEOUT_SECONDS", 10.0)


def get_local_timezone() -> ZoneInfo:
    """Timezone used for "today" boundaries and calendar-day buckets."""

    try:
        return ZoneInfo(RESTAURANT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


__all__ = [
    "ADMIN_SECRET",
    "LOG_LEVEL",
    "NOTIFICATION_SENDER",
    "NOTIFICATION_TIMEOUT_SECONDS",
    "NOTIFICATION_WEBHOOK_URL",
    "RESTAURANT_TIMEZONE",
    "get_local_timezone",
]
