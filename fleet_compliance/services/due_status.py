# fleet_compliance/services/due_status.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Iterable, Optional

from .errors import InputError

DEFAULT_DUE_SOON_DAYS = 7
DEFAULT_DUE_SOON_ODOMETER = 500
DUE_SOON_FRACTION = 0.8


class DueState(Enum):
    """Lower rank = more urgent."""

    OVERDUE = "overdue"
    MISSING = "missing"
    DUE_SOON = "due-soon"
    OK = "ok"

    @property
    def rank(self) -> int:
        return _STATE_RANK[self]

    @property
    def needs_action(self) -> bool:
        return self is not DueState.OK


_STATE_RANK = {
    DueState.MISSING: 0,
    DueState.OVERDUE: 0,
    DueState.DUE_SOON: 1,
    DueState.OK: 2,
}


@dataclass(frozen=True)
class MaintenanceDue:
    state: DueState
    trigger: Optional[str] = None          # "date" | "mileage" | "date+mileage"
    days_overdue: Optional[int] = None     # today - due_date, negative when still ahead
    odometer_overage: Optional[int] = None # current - due_odometer, negative when still ahead

    @property
    def is_overdue(self) -> bool:
        return self.state is DueState.OVERDUE


@dataclass(frozen=True)
class CadenceDue:
    state: DueState
    age_days: Optional[int] = None
    interval_days: Optional[int] = None


def classify(
    due_date: Optional[date],
    due_odometer: Optional[int],
    today: date,
    current_odometer: Optional[int] = None,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    due_soon_odometer: int = DEFAULT_DUE_SOON_ODOMETER,
) -> MaintenanceDue:
    """
    Classify one scheduled-maintenance item.

    - date trigger fires when due_date <= today
    - odometer trigger fires when due_odometer <= current_odometer
    - either firing => OVERDUE, tagged with the trigger(s) that fired
    - otherwise DUE_SOON if inside either horizon, else OK

    An item with neither due_date nor due_odometer is a caller error.
    An unknown current odometer means the odometer trigger cannot fire.
    """
    if due_date is None and due_odometer is None:
        raise InputError("Maintenance item needs a due_date or a due_odometer")

    days_overdue = (today - due_date).days if due_date is not None else None
    overage = None
    if due_odometer is not None and current_odometer is not None:
        overage = int(current_odometer) - int(due_odometer)

    by_date = days_overdue is not None and days_overdue >= 0
    by_miles = overage is not None and overage >= 0

    if by_date or by_miles:
        if by_date and by_miles:
            trigger = "date+mileage"
        elif by_date:
            trigger = "date"
        else:
            trigger = "mileage"
        return MaintenanceDue(DueState.OVERDUE, trigger, days_overdue, overage)

    soon_by_date = days_overdue is not None and -days_overdue <= due_soon_days
    soon_by_miles = overage is not None and -overage <= due_soon_odometer
    state = DueState.DUE_SOON if (soon_by_date or soon_by_miles) else DueState.OK
    return MaintenanceDue(state, None, days_overdue, overage)


def overdue_sort_key(
    item_id: Any,
    due_date: Optional[date],
    due_odometer: Optional[int],
    current_odometer: Optional[int],
) -> tuple:
    """
    Total ordering for "most overdue first" lists.

    1. items with a comparable odometer overage, largest overage first
    2. everything else (date-only items, unknown odometer), ranked among
       themselves by how overdue their date is
    3. due_date ascending, undated last
    4. item id, so no two distinct items ever compare equal
    """
    if due_odometer is not None and current_odometer is not None:
        group = 0
        overage_key = -(int(current_odometer) - int(due_odometer))
    else:
        group = 1
        overage_key = 0
    return (group, overage_key, due_date or date.max, str(item_id))


def sort_most_overdue(items: Iterable[Any]) -> list:
    """Sort objects exposing id / due_date / due_odometer / current_odometer."""
    return sorted(
        items,
        key=lambda i: overdue_sort_key(i.id, i.due_date, i.due_odometer, i.current_odometer),
    )


def due_soon_threshold(interval_days: int) -> int:
    return max(1, math.floor(interval_days * DUE_SOON_FRACTION))


def classify_cadence(
    last_completed: Optional[date],
    today: date,
    interval_days: int,
) -> CadenceDue:
    """
    Classify a weekly/monthly checklist cadence from its latest completion.

    No completion at all is MISSING, never OK.
    """
    if interval_days is None or interval_days < 1:
        raise InputError(f"interval_days must be a positive number of days, got {interval_days!r}")
    if last_completed is None:
        return CadenceDue(DueState.MISSING, None, interval_days)

    age = (today - last_completed).days
    if age > interval_days:
        state = DueState.OVERDUE
    elif age >= due_soon_threshold(interval_days):
        state = DueState.DUE_SOON
    else:
        state = DueState.OK
    return CadenceDue(state, age, interval_days)


def forecast_bucket(due_date: Optional[date], today: date) -> str:
    if due_date is None:
        return "later"
    delta = (due_date - today).days
    if delta <= 0:
        return "overdue"
    if delta <= 7:
        return "due-7days"
    if delta <= 14:
        return "due-14days"
    return "later"
