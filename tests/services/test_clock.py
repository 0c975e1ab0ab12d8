# tests/services/test_clock.py
from datetime import date, datetime, timezone

import pytest

from fleet_compliance.services.clock import (
    day_bounds,
    parse_instant,
    today_in_tz,
    trailing_days,
    yesterday,
)
from fleet_compliance.services.errors import InputError


def test_late_evening_in_los_angeles_is_still_the_previous_utc_day():
    now = datetime(2024, 3, 1, 7, 30, tzinfo=timezone.utc)   # 23:30 PST on Feb 29

    assert today_in_tz(now, "America/Los_Angeles") == date(2024, 2, 29)
    assert today_in_tz(now, "America/New_York") == date(2024, 3, 1)


def test_naive_now_is_treated_as_utc():
    assert today_in_tz(datetime(2024, 3, 1, 7, 30), "America/Los_Angeles") == date(2024, 2, 29)


def test_unknown_timezone_is_an_input_error():
    with pytest.raises(InputError):
        today_in_tz(datetime(2024, 3, 1, tzinfo=timezone.utc), "Mars/Olympus_Mons")


def test_zone_directory_name_is_an_input_error():
    # "America" is a directory in the zone database, not a zone
    with pytest.raises(InputError):
        today_in_tz(datetime(2024, 3, 1, tzinfo=timezone.utc), "America")


def test_day_bounds_follow_dst_change():
    # US spring-forward: 2024-03-10 is a 23 hour day in New York
    start, end = day_bounds(date(2024, 3, 10), "America/New_York")

    assert start == datetime(2024, 3, 10, 5, 0, tzinfo=timezone.utc)
    assert end == datetime(2024, 3, 11, 4, 0, tzinfo=timezone.utc)


def test_trailing_days_end_today_oldest_first():
    days = trailing_days(date(2024, 3, 2), 3)

    assert days == [date(2024, 2, 29), date(2024, 3, 1), date(2024, 3, 2)]


def test_trailing_days_rejects_empty_window():
    with pytest.raises(InputError):
        trailing_days(date(2024, 3, 2), 0)


def test_yesterday_crosses_month_boundary():
    assert yesterday(date(2024, 3, 1)) == date(2024, 2, 29)


def test_parse_instant():
    assert parse_instant("2024-03-01T07:30:00Z") == datetime(2024, 3, 1, 7, 30, tzinfo=timezone.utc)
    assert parse_instant("2024-03-01T07:30:00") == datetime(2024, 3, 1, 7, 30, tzinfo=timezone.utc)
    assert parse_instant("") is None
    assert parse_instant(None) is None


def test_parse_instant_rejects_garbage():
    with pytest.raises(InputError):
        parse_instant("yesterday-ish")
