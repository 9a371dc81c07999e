"""Notification timestamps.

Rows keep ``created_at`` and ``last_used_at`` as naive wall-clock values in
``APP_TIMEZONE``; entities handed to callers carry the zone explicitly.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from avisos.config import get_settings


def app_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().app_timezone)


def local_now() -> datetime:
    return datetime.now(tz=app_zone())


def stored_now() -> datetime:
    """Current time in the column format."""

    return local_now().replace(tzinfo=None)


def stored_cutoff(days: int) -> datetime:
    """Column value for the instant ``days`` days ago; older rows are expired."""

    return stored_now() - timedelta(days=days)


def to_local(value: datetime | None) -> datetime | None:
    """Attach the app zone to a column value, or convert an aware value to it."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=app_zone())
    return value.astimezone(app_zone())


def to_stored(value: datetime | None) -> datetime | None:
    local = to_local(value)
    return local.replace(tzinfo=None) if local is not None else None


__all__ = [
    "app_zone",
    "local_now",
    "stored_cutoff",
    "stored_now",
    "to_local",
    "to_stored",
]
