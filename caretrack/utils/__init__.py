"""Utility modules."""

from caretrack.utils.dates import (
    days_until,
    parse_time,
    time_range_minutes,
    today_utc,
    utcnow,
    week_range,
)
from caretrack.utils.normalization import (
    normalize_email,
    normalize_identifier,
    normalize_name,
    normalize_search_text,
)

__all__ = [
    # Dates
    "days_until",
    "parse_time",
    "time_range_minutes",
    "today_utc",
    "utcnow",
    "week_range",
    # Normalization
    "normalize_email",
    "normalize_identifier",
    "normalize_name",
    "normalize_search_text",
]
