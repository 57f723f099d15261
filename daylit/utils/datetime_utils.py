"""
Date and time helpers.

Instants are handled as aware UTC datetimes and written to the database as
naive UTC. Wall-clock slot times are ``datetime.time`` values; planning math
works in minutes from midnight.
"""

from datetime import datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

UTC = timezone.utc


def now_utc() -> datetime:
    return datetime.now(UTC)


def get_user_now(user_timezone: str) -> datetime:
    """Current wall-clock time in ``user_timezone`` (an IANA name such as "Europe/Berlin")."""
    return now_utc().astimezone(ZoneInfo(user_timezone))


def to_user_datetime(dt: datetime, user_timezone: str) -> datetime:
    """Aware datetime in ``user_timezone``; a naive value is read as wall clock there."""
    tz = ZoneInfo(user_timezone)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime read from storage or user input to aware UTC.

    Naive values are taken to be UTC already. None passes through.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_db_datetime(dt: Optional[datetime]) -> Optional[datetime]:
    """Naive UTC for a TIMESTAMP WITHOUT TIME ZONE column."""
    aware = ensure_utc(dt)
    return aware.replace(tzinfo=None) if aware else None


def parse_hhmm(value: str) -> time:
    """
    Parse a 24h "HH:MM" string such as a configured day bound.

    Raises:
        ValueError: If the string is malformed or out of range
    """
    parts = value.split(":")
    if len(parts) != 2:
        raise ValueError(f"invalid time format (expected HH:MM): {value!r}")
    hours = int(parts[0])
    minutes = int(parts[1])
    if hours < 0 or hours > 23 or minutes < 0 or minutes > 59:
        raise ValueError(f"time out of range: {value!r}")
    return time(hours, minutes)


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)
