# fleet_compliance/services/clock.py
"""
Calendar-day helpers.

Every function takes "now" or "today" explicitly. Nothing in here reads the
wall clock, so callers decide what "today" means (usually the franchise's
local date) and tests stay deterministic.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.parser import isoparse

from .errors import InputError


def resolve_zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InputError(f"Unknown timezone: {tz_name!r}") from exc


def today_in_tz(now: datetime, tz_name: str) -> date:
    """
    Calendar day of `now` as seen in `tz_name`.

    A naive `now` is treated as UTC, which is how the scheduler and the
    database hand timestamps to us.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_zone(tz_name)).date()


def day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day, returned in UTC."""
    zone = resolve_zone(tz_name)
    start = datetime.combine(day, datetime.min.time(), tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), datetime.min.time(), tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def trailing_days(today: date, count: int) -> list[date]:
    """The `count` calendar days ending at `today`, oldest first."""
    if count < 1:
        raise InputError("count must be at least 1")
    return [today - timedelta(days=offset) for offset in range(count - 1, -1, -1)]


def lookback_start(today: date, days: int) -> date:
    return today - timedelta(days=days)


def yesterday(today: date) -> date:
    return today - timedelta(days=1)


def days_between(earlier: date, later: date) -> int:
    return (later - earlier).days


def parse_instant(raw: Optional[str]) -> Optional[datetime]:
    """ISO-8601 string -> aware datetime (naive input is UTC). None/blank -> None."""
    if raw is None or not str(raw).strip():
        return None
    try:
        value = isoparse(str(raw).strip())
    except (ValueError, OverflowError) as exc:
        raise InputError(f"Invalid ISO-8601 timestamp: {raw!r}") from exc
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
