# fleet_compliance/services/action_items.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Sequence

from .due_status import (
    DEFAULT_DUE_SOON_DAYS,
    DEFAULT_DUE_SOON_ODOMETER,
    DueState,
    classify,
    overdue_sort_key,
)

DEFAULT_ACTION_ITEM_LIMIT = 10

_OPEN_ISSUE_STATUSES = {"open", "active", "unresolved", "pending", "needs_attention", ""}


class Urgency(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 0, "medium": 1, "low": 2}[self.value]


@dataclass(frozen=True)
class ActionItem:
    id: str
    type: str            # missed-eod | open-issue | maintenance-due | maintenance-scheduled
    urgency: Urgency
    label: str
    vehicle_id: int
    truck_name: str
    age_or_due: str
    cta_label: str
    cta_link: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "urgency": self.urgency.value,
            "label": self.label,
            "vehicle_id": self.vehicle_id,
            "truck_name": self.truck_name,
            "age_or_due": self.age_or_due,
            "cta_label": self.cta_label,
            "cta_link": self.cta_link,
        }


def _short_date(d: date) -> str:
    return f"{d:%b} {d.day}"


def human_age(created_at: Optional[datetime], now: datetime) -> str:
    if created_at is None:
        return "Open"
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    hours = max(0, int((now - created_at).total_seconds() // 3600))
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def is_open_issue(status: Optional[str]) -> bool:
    return "_".join((status or "").split()).lower() in _OPEN_ISSUE_STATUSES


def issue_urgency(severity: Optional[str]) -> Urgency:
    s = (severity or "").strip().lower()
    if s in ("high", "critical"):
        return Urgency.HIGH
    if s == "low":
        return Urgency.LOW
    return Urgency.MEDIUM


def missed_eod_items(vehicles: Sequence, logged_vehicle_ids: set, missed_day: date) -> list[ActionItem]:
    """One high-urgency item per vehicle with no end-of-day log for `missed_day`."""
    key = missed_day.isoformat()
    return [
        ActionItem(
            id=f"missed-eod-{v.id}-{key}",
            type="missed-eod",
            urgency=Urgency.HIGH,
            label="End of Day Log Missed",
            vehicle_id=v.id,
            truck_name=v.vehicle_number,
            age_or_due="Yesterday",
            cta_label="Complete End Day",
            cta_link=f"/vehicle/{v.id}/end-day?date={key}",
        )
        for v in vehicles
        if v.id not in logged_vehicle_ids
    ]


def open_issue_items(issues: Iterable, truck_names: dict, now: datetime) -> list[ActionItem]:
    """Open issues, newest first."""
    epoch = datetime.min.replace(tzinfo=timezone.utc)

    def _created(i):
        c = i.created_at
        if c is None:
            return epoch
        return c if c.tzinfo else c.replace(tzinfo=timezone.utc)

    open_issues = [i for i in issues if i.vehicle_id in truck_names and is_open_issue(i.status)]
    open_issues.sort(key=lambda i: (_created(i), i.id), reverse=True)
    return [
        ActionItem(
            id=f"issue-{i.id}",
            type="open-issue",
            urgency=issue_urgency(i.severity),
            label=i.description or "Open issue",
            vehicle_id=i.vehicle_id,
            truck_name=truck_names[i.vehicle_id],
            age_or_due=human_age(i.created_at, now),
            cta_label="View Issue",
            cta_link=f"/manager/issues/{i.id}",
        )
        for i in open_issues
    ]


def _maintenance_age(due, m) -> str:
    if due.state is DueState.OVERDUE:
        if due.trigger == "mileage":
            return f"Overdue {due.odometer_overage:,} mi"
        if due.trigger == "date":
            return f"Overdue since {_short_date(m.due_date)}"
        return f"Overdue {due.odometer_overage:,} mi, since {_short_date(m.due_date)}"
    if m.due_date is not None:
        return f"Due {_short_date(m.due_date)}"
    return f"Due in {-due.odometer_overage:,} mi"


def maintenance_items(
    maintenance: Iterable,
    today: date,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    due_soon_odometer: int = DEFAULT_DUE_SOON_ODOMETER,
) -> list[ActionItem]:
    """Overdue (high) then due-soon (medium) maintenance, most overdue first."""
    evaluated = []
    for m in maintenance:
        due = classify(m.due_date, m.due_odometer, today, m.current_odometer, due_soon_days, due_soon_odometer)
        if due.state is DueState.OK:
            continue
        evaluated.append((due, m))

    evaluated.sort(key=lambda pair: (
        pair[0].state.rank,
        overdue_sort_key(pair[1].id, pair[1].due_date, pair[1].due_odometer, pair[1].current_odometer),
    ))

    out = []
    for due, m in evaluated:
        overdue = due.state is DueState.OVERDUE
        out.append(ActionItem(
            id=f"maint-{m.id}",
            type="maintenance-due" if overdue else "maintenance-scheduled",
            urgency=Urgency.HIGH if overdue else Urgency.MEDIUM,
            label=m.description or m.maintenance_type,
            vehicle_id=m.vehicle_id,
            truck_name=m.vehicle_number,
            age_or_due=_maintenance_age(due, m),
            cta_label="View Maintenance",
            cta_link="/manager/maintenance",
        ))
    return out


def rank_action_items(*groups: Iterable[ActionItem], limit: int = DEFAULT_ACTION_ITEM_LIMIT) -> list[ActionItem]:
    """
    Merge item lists and order by urgency, high first.

    The sort is stable, so inside a tier items keep their merge order: the
    order of `groups`, then each group's own order. Truncation happens after
    sorting so a late high-urgency item can never be cut for an early low one.
    """
    merged = [item for group in groups for item in group]
    merged.sort(key=lambda item: item.urgency.rank)
    return merged[:limit] if limit is not None else merged


def build_action_items(
    vehicles: Sequence,
    issues: Iterable,
    logged_yesterday: set,
    maintenance: Iterable,
    today: date,
    now: datetime,
    missed_day: date,
    limit: int = DEFAULT_ACTION_ITEM_LIMIT,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    due_soon_odometer: int = DEFAULT_DUE_SOON_ODOMETER,
) -> list[ActionItem]:
    """Missed end-of-day logs, then open issues, then maintenance, ranked by urgency."""
    truck_names = {v.id: v.vehicle_number for v in vehicles}
    in_scope = [m for m in maintenance if m.vehicle_id in truck_names]
    return rank_action_items(
        missed_eod_items(vehicles, logged_yesterday, missed_day),
        open_issue_items(issues, truck_names, now),
        maintenance_items(in_scope, today, due_soon_days, due_soon_odometer),
        limit=limit,
    )
