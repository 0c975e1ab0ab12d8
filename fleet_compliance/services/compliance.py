# fleet_compliance/services/compliance.py
"""
Day-by-day, truck-by-truck checklist compliance grid.

Pure: the caller loads vehicles, submissions and cadence intervals and passes
an explicit `today`. Same inputs, same output.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Sequence

from .due_status import DueState, classify_cadence
from .errors import InputError

WINDOW_CHOICES = (7, 14, 30)

# How far back to look for the latest submission of each cadence, so a badge
# can still find a weekly/monthly checklist done before the visible window.
CADENCE_LOOKBACK_DAYS = {"weekly": 120, "monthly": 365}


class CellState(Enum):
    PASS = "pass"
    SERVICE_SOON = "service_soon"
    FAIL = "fail"
    MISSING = "missing"
    FUTURE = "future"


_PASS_STATUSES = {"pass", "passed", "ok", "completed", "complete", "done", "submitted"}
_SERVICE_SOON_STATUSES = {
    "service_soon", "service-soon", "needs_service", "needs-service",
    "needs_attention", "needs-attention", "warning", "caution",
}
_FAIL_STATUSES = {"fail", "failed"}


def normalize_status(raw: Optional[str]) -> str:
    """Lower-case, trim, and collapse inner whitespace runs to one underscore."""
    if raw is None:
        return ""
    return "_".join(str(raw).split()).lower()


def submission_state(raw: Optional[str]) -> CellState:
    """
    Map a free-form overall_status to a closed state.

    Anything unrecognised (including "pending" and blanks) is MISSING,
    never PASS.
    """
    s = normalize_status(raw)
    if s in _FAIL_STATUSES:
        return CellState.FAIL
    if s in _SERVICE_SOON_STATUSES:
        return CellState.SERVICE_SOON
    if s in _PASS_STATUSES:
        return CellState.PASS
    return CellState.MISSING


def validate_window(window_days) -> int:
    try:
        n = int(window_days)
    except (TypeError, ValueError) as exc:
        raise InputError(f"window_days must be one of {WINDOW_CHOICES}") from exc
    if n not in WINDOW_CHOICES:
        raise InputError(f"window_days must be one of {WINDOW_CHOICES}")
    return n


@dataclass(frozen=True)
class Cell:
    vehicle_id: int
    day: date
    state: CellState

    def to_dict(self) -> dict:
        return {"vehicle_id": self.vehicle_id, "day": self.day.isoformat(), "state": self.state.value}


@dataclass(frozen=True)
class CadenceBadge:
    kind: str                    # weekly | monthly
    state: str                   # missing | overdue | fail | service_soon | due-soon | ok
    label: str
    interval_days: int
    age_days: Optional[int] = None
    last_completed: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "state": self.state,
            "label": self.label,
            "interval_days": self.interval_days,
            "age_days": self.age_days,
            "last_completed": self.last_completed.isoformat() if self.last_completed else None,
        }


@dataclass
class VehicleCompliance:
    vehicle_id: int
    vehicle_number: str
    cells: list[Cell]
    required_days: int
    submitted_days: int
    completion_pct: float
    weekly: CadenceBadge
    monthly: CadenceBadge

    def to_dict(self) -> dict:
        return {
            "vehicle_id": self.vehicle_id,
            "vehicle_number": self.vehicle_number,
            "cells": [c.to_dict() for c in self.cells],
            "required_days": self.required_days,
            "submitted_days": self.submitted_days,
            "completion_pct": self.completion_pct,
            "weekly": self.weekly.to_dict(),
            "monthly": self.monthly.to_dict(),
        }


@dataclass(frozen=True)
class DaySummary:
    day: date
    completed: int
    total: int
    pct: Optional[float]

    def to_dict(self) -> dict:
        return {"day": self.day.isoformat(), "completed": self.completed, "total": self.total, "pct": self.pct}


@dataclass
class ComplianceCalendar:
    today: date
    days: list[date]
    vehicles: list[VehicleCompliance] = field(default_factory=list)
    day_summaries: list[DaySummary] = field(default_factory=list)
    denominator: int = 0
    overall_pct: float = 0.0

    def to_dict(self) -> dict:
        return {
            "today": self.today.isoformat(),
            "start": self.days[0].isoformat() if self.days else None,
            "end": self.days[-1].isoformat() if self.days else None,
            "days": [d.isoformat() for d in self.days],
            "vehicles": [v.to_dict() for v in self.vehicles],
            "grid": [c.to_dict() for v in self.vehicles for c in v.cells],
            "day_summaries": [s.to_dict() for s in self.day_summaries],
            "denominator": self.denominator,
            "overall_pct": self.overall_pct,
        }


def _pct(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 1)


def _latest_completed(rows: Iterable, today: date) -> dict[int, tuple[date, CellState]]:
    """vehicle_id -> (date, state) of the newest non-missing submission on or before today."""
    latest: dict[int, tuple[date, CellState]] = {}
    for r in rows:
        if r.checklist_date > today:
            continue
        state = submission_state(r.overall_status)
        if state is CellState.MISSING:
            continue
        cur = latest.get(r.vehicle_id)
        # Same-day duplicates resolve to the worse state so the result is order-independent.
        if cur is None or r.checklist_date > cur[0] or (
            r.checklist_date == cur[0] and _SEVERITY[state] > _SEVERITY[cur[1]]
        ):
            latest[r.vehicle_id] = (r.checklist_date, state)
    return latest


_SEVERITY = {
    CellState.MISSING: 0,
    CellState.PASS: 1,
    CellState.SERVICE_SOON: 2,
    CellState.FAIL: 3,
    CellState.FUTURE: -1,
}


def cadence_badge(kind: str, latest: Optional[tuple[date, CellState]], today: date, interval_days: int) -> CadenceBadge:
    """
    Badge for one vehicle's weekly or monthly cadence.

    Precedence: missing, overdue, failed, service soon, due soon, ok.
    """
    title = kind.capitalize()
    last_date, last_state = latest if latest else (None, None)
    due = classify_cadence(last_date, today, interval_days)

    if due.state is DueState.MISSING:
        return CadenceBadge(kind, "missing", f"{title}: Missing", interval_days)
    if due.state is DueState.OVERDUE:
        return CadenceBadge(kind, "overdue", f"{title}: Overdue {due.age_days}d", interval_days, due.age_days, last_date)
    if last_state is CellState.FAIL:
        return CadenceBadge(kind, "fail", f"{title}: Failed", interval_days, due.age_days, last_date)
    if last_state is CellState.SERVICE_SOON:
        return CadenceBadge(kind, "service_soon", f"{title}: Service soon", interval_days, due.age_days, last_date)
    if due.state is DueState.DUE_SOON:
        return CadenceBadge(kind, "due-soon", f"{title}: Due soon", interval_days, due.age_days, last_date)
    return CadenceBadge(kind, "ok", f"{title}: OK", interval_days, due.age_days, last_date)


def build_compliance_calendar(
    vehicles: Sequence,
    days: Sequence[date],
    today: date,
    daily: Iterable,
    weekly: Iterable = (),
    monthly: Iterable = (),
    intervals: Optional[dict] = None,
    selected_vehicle_id: Optional[int] = None,
) -> ComplianceCalendar:
    """
    Build the grid for `vehicles` over `days`.

    vehicles: objects with .id and .vehicle_number
    daily/weekly/monthly: objects with .vehicle_id, .checklist_date, .overall_status
    intervals: {"weekly": n, "monthly": n} cadence targets in days

    Completion percentages count past days only; today is still in progress.
    The fleet-wide denominator is the number of in-scope vehicles that have at
    least one submission of any cadence, or exactly 1 when a single vehicle
    is selected.
    """
    intervals = intervals or {"weekly": 7, "monthly": 30}
    days = sorted(days)
    daily = list(daily)
    weekly = list(weekly)
    monthly = list(monthly)

    if selected_vehicle_id is not None:
        vehicles = [v for v in vehicles if v.id == selected_vehicle_id]
    in_scope = {v.id for v in vehicles}

    daily_by_key: dict[tuple[int, date], CellState] = {}
    for r in daily:
        key = (r.vehicle_id, r.checklist_date)
        state = submission_state(r.overall_status)
        prev = daily_by_key.get(key)
        if prev is None or _SEVERITY[state] > _SEVERITY[prev]:
            daily_by_key[key] = state

    latest_weekly = _latest_completed(weekly, today)
    latest_monthly = _latest_completed(monthly, today)

    past_days = [d for d in days if d < today]
    out: list[VehicleCompliance] = []
    for v in vehicles:
        cells = []
        submitted = 0
        for d in days:
            if d > today:
                state = CellState.FUTURE
            else:
                state = daily_by_key.get((v.id, d), CellState.MISSING)
            if d < today and state is not CellState.MISSING:
                submitted += 1
            cells.append(Cell(v.id, d, state))

        out.append(VehicleCompliance(
            vehicle_id=v.id,
            vehicle_number=v.vehicle_number,
            cells=cells,
            required_days=len(past_days),
            submitted_days=submitted,
            completion_pct=_pct(submitted, len(past_days)),
            weekly=cadence_badge("weekly", latest_weekly.get(v.id), today, intervals["weekly"]),
            monthly=cadence_badge("monthly", latest_monthly.get(v.id), today, intervals["monthly"]),
        ))

    if selected_vehicle_id is not None:
        denominator = 1
    else:
        with_any = {r.vehicle_id for r in daily} | {r.vehicle_id for r in weekly} | {r.vehicle_id for r in monthly}
        denominator = len(with_any & in_scope)

    summaries = []
    for i, d in enumerate(days):
        if d > today:
            summaries.append(DaySummary(d, 0, denominator, None))
            continue
        completed = sum(1 for vc in out if vc.cells[i].state is not CellState.MISSING)
        summaries.append(DaySummary(d, completed, denominator, _pct(completed, denominator)))

    submitted_total = sum(vc.submitted_days for vc in out)
    return ComplianceCalendar(
        today=today,
        days=list(days),
        vehicles=out,
        day_summaries=summaries,
        denominator=denominator,
        overall_pct=_pct(submitted_total, len(past_days) * denominator),
    )
