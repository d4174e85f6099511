"""Tests for date helpers."""
from datetime import date, datetime, timedelta, timezone

import pytest

from caretrack.utils.dates import (
    date_range_from_today,
    day_start,
    days_until,
    is_date_in_range,
    next_timestamp,
    parse_time,
    time_range_minutes,
    week_range,
)


def test_parse_time():
    assert parse_time("00:00") == 0
    assert parse_time("23:59") == 23 * 60 + 59


@pytest.mark.parametrize("value", ["24:00", "9:00", "12:60", "", "noon"])
def test_parse_time_rejects_invalid(value):
    with pytest.raises(ValueError):
        parse_time(value)


def test_time_range_minutes_can_be_negative():
    assert time_range_minutes("09:15", "10:00") == 45
    assert time_range_minutes("10:00", "09:00") == -60


def test_week_range_is_monday_to_sunday():
    # 2026-03-11 is a Wednesday
    assert week_range(date(2026, 3, 11)) == (date(2026, 3, 9), date(2026, 3, 15))
    assert week_range(date(2026, 3, 9)) == (date(2026, 3, 9), date(2026, 3, 15))
    assert week_range(date(2026, 3, 15)) == (date(2026, 3, 9), date(2026, 3, 15))


def test_date_range_from_today():
    assert date_range_from_today(7, date(2026, 3, 10)) == (date(2026, 3, 10), date(2026, 3, 17))


def test_days_until():
    today = date(2026, 3, 10)
    assert days_until(date(2026, 3, 24), today) == 14
    assert days_until(date(2026, 3, 9), today) == -1


def test_is_date_in_range_inclusive():
    start, end = date(2026, 3, 1), date(2026, 3, 31)
    assert is_date_in_range(start, start, end)
    assert is_date_in_range(end, start, end)
    assert not is_date_in_range(date(2026, 4, 1), start, end)
    assert is_date_in_range(date(1999, 1, 1), None, end)
    assert is_date_in_range(date(2099, 1, 1), start, None)


def test_day_start_is_utc_midnight():
    assert day_start(date(2026, 3, 10)) == datetime(2026, 3, 10, tzinfo=timezone.utc)


def test_next_timestamp_never_goes_backwards():
    future = datetime.now(timezone.utc) + timedelta(hours=1)
    assert next_timestamp(future) == future
    past = datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert next_timestamp(past) > past
