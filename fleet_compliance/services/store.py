# fleet_compliance/services/store.py
"""
Read-only queries the compliance engine runs against the database.

Rows are returned as frozen dataclasses so the pure services never touch ORM
objects or the session. Any SQLAlchemy failure is re-raised as
StoreReadError; callers never get a partial result from a failed read.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from fleet_compliance.db_models import (
    CHECKLIST_MODELS,
    ChecklistSettings,
    DailyLog,
    Franchise,
    FranchiseMembership,
    NotificationRun,
    PushSubscription,
    ScheduledMaintenance,
    Vehicle,
    VehicleAssignment,
    VehicleIssue,
    db,
)
from .errors import InputError, StoreReadError

MANAGER_ROLES = ("owner", "manager", "super_admin", "admin")
DEFAULT_CADENCE_INTERVALS = {"weekly": 7, "monthly": 30}


@dataclass(frozen=True)
class FranchiseRow:
    id: int
    name: str
    timezone: Optional[str]


@dataclass(frozen=True)
class VehicleRow:
    id: int
    franchise_id: int
    vehicle_number: str
    status: str
    current_odometer: Optional[int]


@dataclass(frozen=True)
class IssueRow:
    id: int
    vehicle_id: int
    description: Optional[str]
    status: Optional[str]
    severity: Optional[str]
    created_at: Optional[datetime]


@dataclass(frozen=True)
class SubmissionRow:
    vehicle_id: int
    checklist_date: date
    overall_status: Optional[str]
    driver_id: Optional[str] = None


@dataclass(frozen=True)
class MaintenanceRow:
    id: int
    vehicle_id: int
    vehicle_number: str
    maintenance_type: str
    description: Optional[str]
    due_date: Optional[date]
    due_odometer: Optional[int]
    current_odometer: Optional[int]


@dataclass(frozen=True)
class SubscriptionRow:
    id: int
    user_id: str
    endpoint: str
    p256dh: str
    auth: str

    def to_subscription_info(self) -> dict:
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


@contextmanager
def _reading(what: str):
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreReadError(f"Failed to read {what}: {exc}") from exc


# -----------------------------------------------------------------------------
# Franchises / vehicles
# -----------------------------------------------------------------------------
def _franchise_row(f: Franchise) -> FranchiseRow:
    return FranchiseRow(id=f.id, name=f.name, timezone=f.timezone)


def list_franchises() -> list[FranchiseRow]:
    with _reading("franchises"):
        rows = db.session.query(Franchise).order_by(Franchise.id.asc()).all()
    return [_franchise_row(f) for f in rows]


def get_franchise(franchise_id: int) -> Optional[FranchiseRow]:
    with _reading("franchise"):
        f = db.session.get(Franchise, franchise_id)
    return _franchise_row(f) if f else None


def active_vehicles(franchise_id: int, vehicle_id: Optional[int] = None) -> list[VehicleRow]:
    with _reading("vehicles"):
        q = (
            db.session.query(Vehicle)
            .filter(Vehicle.franchise_id == franchise_id, Vehicle.status == "active")
        )
        if vehicle_id is not None:
            q = q.filter(Vehicle.id == vehicle_id)
        rows = q.order_by(Vehicle.vehicle_number.asc(), Vehicle.id.asc()).all()
    return [
        VehicleRow(
            id=v.id,
            franchise_id=v.franchise_id,
            vehicle_number=v.vehicle_number,
            status=v.status,
            current_odometer=v.current_odometer,
        )
        for v in rows
    ]


# -----------------------------------------------------------------------------
# Issues / logs / checklists
# -----------------------------------------------------------------------------
def issues_for_vehicles(vehicle_ids: Iterable[int]) -> list[IssueRow]:
    """All unresolved-looking issues; the open/closed decision is made by the ranker."""
    ids = list(vehicle_ids)
    if not ids:
        return []
    with _reading("vehicle issues"):
        rows = (
            db.session.query(VehicleIssue)
            .filter(VehicleIssue.vehicle_id.in_(ids), VehicleIssue.resolved_at.is_(None))
            .order_by(VehicleIssue.created_at.desc(), VehicleIssue.id.desc())
            .all()
        )
    return [
        IssueRow(
            id=i.id,
            vehicle_id=i.vehicle_id,
            description=i.description,
            status=i.status,
            severity=i.severity,
            created_at=i.created_at,
        )
        for i in rows
    ]


def daily_log_vehicle_ids(vehicle_ids: Iterable[int], day: date) -> set[int]:
    ids = list(vehicle_ids)
    if not ids:
        return set()
    with _reading("daily logs"):
        rows = (
            db.session.query(DailyLog.vehicle_id)
            .filter(DailyLog.vehicle_id.in_(ids), DailyLog.log_date == day)
            .all()
        )
    return {r[0] for r in rows}


def checklist_submissions(
    kind: str,
    franchise_id: int,
    start: date,
    end: date,
    vehicle_ids: Optional[Iterable[int]] = None,
) -> list[SubmissionRow]:
    """Submissions of one cadence with start <= checklist_date <= end."""
    model = CHECKLIST_MODELS.get(kind)
    if model is None:
        raise InputError(f"Unknown checklist kind: {kind!r}")
    with _reading(f"{kind} checklists"):
        q = (
            db.session.query(model.vehicle_id, model.checklist_date, model.overall_status, model.driver_id)
            .filter(
                model.franchise_id == franchise_id,
                model.checklist_date >= start,
                model.checklist_date <= end,
            )
        )
        if vehicle_ids is not None:
            q = q.filter(model.vehicle_id.in_(list(vehicle_ids)))
        rows = q.all()
    return [
        SubmissionRow(vehicle_id=r[0], checklist_date=r[1], overall_status=r[2], driver_id=r[3])
        for r in rows
    ]


def cadence_intervals(franchise_id: int) -> dict[str, int]:
    intervals = dict(DEFAULT_CADENCE_INTERVALS)
    with _reading("checklist settings"):
        rows = (
            db.session.query(ChecklistSettings)
            .filter(ChecklistSettings.franchise_id == franchise_id)
            .all()
        )
    for s in rows:
        kind = (s.checklist_type or "").strip().lower()
        if kind in intervals and s.interval_days:
            intervals[kind] = int(s.interval_days)
    return intervals


# -----------------------------------------------------------------------------
# Maintenance
# -----------------------------------------------------------------------------
def open_maintenance(franchise_id: int, vehicle_ids: Optional[Iterable[int]] = None) -> list[MaintenanceRow]:
    with _reading("scheduled maintenance"):
        q = (
            db.session.query(ScheduledMaintenance, Vehicle)
            .join(Vehicle, Vehicle.id == ScheduledMaintenance.vehicle_id)
            .filter(
                ScheduledMaintenance.franchise_id == franchise_id,
                Vehicle.franchise_id == franchise_id,
                or_(ScheduledMaintenance.completed.is_(None), ScheduledMaintenance.completed.is_(False)),
            )
        )
        if vehicle_ids is not None:
            q = q.filter(ScheduledMaintenance.vehicle_id.in_(list(vehicle_ids)))
        rows = q.all()
    return [
        MaintenanceRow(
            id=m.id,
            vehicle_id=m.vehicle_id,
            vehicle_number=v.vehicle_number,
            maintenance_type=m.maintenance_type,
            description=m.description,
            due_date=m.due_date,
            due_odometer=m.due_odometer,
            current_odometer=v.current_odometer,
        )
        for m, v in rows
    ]


# -----------------------------------------------------------------------------
# Notification job reads
# -----------------------------------------------------------------------------
def notification_run_exists(franchise_id: int, run_date: date, run_type: str) -> bool:
    with _reading("notification runs"):
        row = (
            db.session.query(NotificationRun.id)
            .filter_by(franchise_id=franchise_id, run_date=run_date, run_type=run_type)
            .first()
        )
    return row is not None


def recipient_user_ids(franchise_id: int, vehicle_ids: Iterable[int]) -> set[str]:
    """Drivers actively assigned to any of `vehicle_ids` plus the franchise's managers."""
    ids = list(vehicle_ids)
    with _reading("recipients"):
        assignees = []
        if ids:
            assignees = (
                db.session.query(VehicleAssignment.user_id)
                .filter(
                    VehicleAssignment.franchise_id == franchise_id,
                    VehicleAssignment.is_active.is_(True),
                    VehicleAssignment.vehicle_id.in_(ids),
                )
                .all()
            )
        managers = (
            db.session.query(FranchiseMembership.user_id)
            .filter(
                FranchiseMembership.franchise_id == franchise_id,
                FranchiseMembership.is_active.is_(True),
                FranchiseMembership.role.in_(MANAGER_ROLES),
            )
            .all()
        )
    return {r[0] for r in assignees} | {r[0] for r in managers}


def active_subscriptions(franchise_id: int, user_ids: Iterable[str]) -> list[SubscriptionRow]:
    users = list(user_ids)
    if not users:
        return []
    with _reading("push subscriptions"):
        rows = (
            db.session.query(PushSubscription)
            .filter(
                PushSubscription.franchise_id == franchise_id,
                PushSubscription.is_active.is_(True),
                PushSubscription.user_id.in_(users),
            )
            .order_by(PushSubscription.id.asc())
            .all()
        )
    return [
        SubscriptionRow(id=s.id, user_id=s.user_id, endpoint=s.endpoint, p256dh=s.p256dh, auth=s.auth)
        for s in rows
    ]
