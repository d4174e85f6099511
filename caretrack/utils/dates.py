"""Date and time helpers.

All calendar arithmetic is done on ``datetime.date`` values and all timestamps
are timezone-aware UTC. Shift and activity times are same-day ``HH:MM`` strings.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone

TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"
_TIME_RE = re.compile(TIME_PATTERN)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today_utc() -> date:
    return utcnow().date()


def next_timestamp(previous: datetime | None = None) -> datetime:
    """Current UTC time, never earlier than ``previous``."""
    now = utcnow()
    if previous is not None and previous > now:
        return previous
    return now


def parse_time(value: str) -> int:
    """
    Parse an ``HH:MM`` string into minutes since midnight.

    Raises:
        ValueError: If the value is not a valid 24-hour time.
    """
    if not _TIME_RE.match(value or ""):
        raise ValueError("Time must be in HH:MM format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def time_range_minutes(start_time: str, end_time: str) -> int:
    """Minutes from ``start_time`` to ``end_time`` (negative if end is earlier)."""
    return parse_time(end_time) - parse_time(start_time)


def day_start(value: date) -> datetime:
    """UTC midnight at the start of ``value``."""
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def week_range(today: date | None = None) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``today``."""
    today = today or today_utc()
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def date_range_from_today(days: int, today: date | None = None) -> tuple[date, date]:
    today = today or today_utc()
    return today, today + timedelta(days=days)


def days_until(target: date, today: date | None = None) -> int:
    """Whole calendar days from ``today`` to ``target`` (negative when past)."""
    today = today or today_utc()
    return (target - today).days


def is_date_in_range(value: date, start: date | None, end: date | None) -> bool:
    """Inclusive range check; a missing bound is unconstrained."""
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True
