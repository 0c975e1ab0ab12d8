# fleet_compliance/services/notifications.py
"""
Checklist reminder job.

Runs once per scheduler tick. For every franchise it works out the target
day in the franchise's own timezone, skips the franchise if a NotificationRun
row already exists for (franchise, day, run type), finds vehicles whose daily
checklist is missing or still pending, and pushes a reminder to every active
subscription of the assigned drivers and the franchise managers.

The same-day runs (pre-trip, end-of-day) target today. The next-morning
sweep targets yesterday, also pings the driver who left a checklist
pending, and stays quiet on Sundays.

One franchise failing never stops the others; its error lands in that
franchise's entry of the summary.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from flask import current_app
from sqlalchemy.exc import IntegrityError

from fleet_compliance.db_models import NotificationRun, PushSubscription, db
from . import store
from .clock import today_in_tz, yesterday
from .compliance import CellState, submission_state
from .errors import InputError
from .push import DeliveryOutcome, DeliveryResult, PushMessage

PRE_TRIP = "pre_trip_9am"
END_DAY = "end_day_6pm"
EOD_MISSED = "eod_missed"

RUN_TYPES = (PRE_TRIP, END_DAY, EOD_MISSED)
_RUN_ALIASES = {
    "pre_trip": PRE_TRIP,
    "pre-trip": PRE_TRIP,
    "end_day": END_DAY,
    "end-day": END_DAY,
    "eod": EOD_MISSED,
    "eod_reminders": EOD_MISSED,
    "eod-reminders": EOD_MISSED,
}

_TITLES = {
    PRE_TRIP: "Pre-trip checklist overdue",
    END_DAY: "End-of-day checklist overdue",
    EOD_MISSED: "Daily checklist overdue",
}

SUNDAY = 6


def resolve_run_type(selector: Optional[str]) -> str:
    s = (selector or "").strip().lower()
    if s in RUN_TYPES:
        return s
    if s in _RUN_ALIASES:
        return _RUN_ALIASES[s]
    raise InputError(f"Unknown run type: {selector!r} (expected pre_trip, end_day or eod)")


def target_date(run_type: str, today: date) -> date:
    """Day a run checks: today for the same-day runs, yesterday for the morning sweep."""
    return yesterday(today) if run_type == EOD_MISSED else today


def in_quiet_hours(run_type: str, today: date) -> bool:
    return run_type == EOD_MISSED and today.weekday() == SUNDAY


def build_message(run_type: str, missing_vehicles: Sequence, run_date: Optional[date] = None) -> PushMessage:
    numbers = ", ".join(v.vehicle_number for v in missing_vehicles)
    if run_type == EOD_MISSED:
        body = f"Missing or pending checklist for {run_date.isoformat()}: {numbers}"
        return PushMessage(title=_TITLES[run_type], body=body, url=f"/daily-checklists?date={run_date.isoformat()}")
    return PushMessage(title=_TITLES[run_type], body=f"Missing checklist for: {numbers}", url="/manager")


# -----------------------------------------------------------------------------
# Fan-out / fan-in
# -----------------------------------------------------------------------------
@dataclass
class FanOutResult:
    sent: int = 0
    deactivate: list[int] = field(default_factory=list)
    failures: list[DeliveryResult] = field(default_factory=list)


def fan_out(provider, subscriptions: Sequence, message: PushMessage, max_workers: int = 8) -> FanOutResult:
    """
    Deliver `message` to every subscription concurrently and fold the results.

    Workers only talk to the push provider; all database writes happen on
    the calling thread once every delivery has settled.
    """
    result = FanOutResult()
    if not subscriptions:
        return result

    settled: list[DeliveryResult] = []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(subscriptions)))) as executor:
        futures = {executor.submit(provider.send, sub, message): sub for sub in subscriptions}
        for future in as_completed(futures):
            sub = futures[future]
            try:
                settled.append(future.result())
            except Exception as e:
                settled.append(DeliveryResult(sub.id, DeliveryOutcome.FAILED, None, repr(e)))

    for r in sorted(settled, key=lambda r: r.subscription_id):
        if r.outcome is DeliveryOutcome.SENT:
            result.sent += 1
        elif r.outcome is DeliveryOutcome.GONE:
            result.deactivate.append(r.subscription_id)
        else:
            result.failures.append(r)
    return result


# -----------------------------------------------------------------------------
# Dedup marker
# -----------------------------------------------------------------------------
def _insert_marker(franchise_id: int, run_date: date, run_type: str, status: str,
                   reason: Optional[str] = None, now: Optional[datetime] = None) -> Optional[NotificationRun]:
    """Insert the run marker; None when another invocation already holds the key."""
    marker = NotificationRun(
        franchise_id=franchise_id,
        run_date=run_date,
        run_type=run_type,
        status=status,
        reason=reason,
        completed_at=now if status == "completed" else None,
    )
    db.session.add(marker)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return None
    return marker


def _finalize(marker: NotificationRun, outcome: FanOutResult, now: datetime) -> None:
    if outcome.deactivate:
        (
            db.session.query(PushSubscription)
            .filter(PushSubscription.id.in_(outcome.deactivate))
            .update({"is_active": False, "deactivated_at": now}, synchronize_session=False)
        )
    marker.status = "completed"
    marker.sent_count = outcome.sent
    marker.failed_count = len(outcome.failures)
    marker.deactivated_count = len(outcome.deactivate)
    marker.completed_at = now
    db.session.commit()


# -----------------------------------------------------------------------------
# Per-franchise state machine
# -----------------------------------------------------------------------------
@dataclass
class ChecklistGaps:
    """Vehicles without a completed daily checklist, split by whether a row exists."""
    incomplete: list = field(default_factory=list)
    missing: list = field(default_factory=list)
    pending: list = field(default_factory=list)
    pending_drivers: set = field(default_factory=set)


def checklist_gaps(franchise_id: int, vehicles: Sequence, run_date: date) -> ChecklistGaps:
    """
    Classify each vehicle's daily checklist for `run_date`.

    A row whose status is not a completion (pending, blank, unrecognised)
    makes the vehicle pending; no row at all makes it missing. Both land in
    `incomplete`, in fleet order.
    """
    rows = store.checklist_submissions("daily", franchise_id, run_date, run_date, [v.id for v in vehicles])
    done = {r.vehicle_id for r in rows if submission_state(r.overall_status) is not CellState.MISSING}
    started = {}
    for r in rows:
        if r.vehicle_id not in done:
            started.setdefault(r.vehicle_id, []).append(r)

    gaps = ChecklistGaps()
    for v in vehicles:
        if v.id in done:
            continue
        gaps.incomplete.append(v)
        if v.id in started:
            gaps.pending.append(v)
            gaps.pending_drivers.update(r.driver_id for r in started[v.id] if r.driver_id)
        else:
            gaps.missing.append(v)
    return gaps


def _close_without_sending(result: dict, franchise_id: int, run_date: date, run_type: str,
                           reason: str, now: datetime) -> dict:
    marker = _insert_marker(franchise_id, run_date, run_type, "completed", reason, now)
    result["reason"] = reason if marker is not None else "deduped"
    return result


def process_franchise(franchise, run_type: str, now: datetime, provider,
                      default_tz: str = "America/New_York", max_workers: int = 8) -> dict:
    tz = franchise.timezone or default_tz
    result = {
        "franchiseName": franchise.name or str(franchise.id),
        "tz": tz,
        "runType": run_type,
        "sent": 0,
    }
    today = today_in_tz(now, tz)
    run_date = target_date(run_type, today)
    result["runDate"] = run_date.isoformat()

    if in_quiet_hours(run_type, today):
        result["reason"] = "quiet_hours"
        return result

    if store.notification_run_exists(franchise.id, run_date, run_type):
        result["reason"] = "deduped"
        return result

    vehicles = store.active_vehicles(franchise.id)
    if not vehicles:
        return _close_without_sending(result, franchise.id, run_date, run_type, "no_vehicles", now)

    gaps = checklist_gaps(franchise.id, vehicles, run_date)
    missing = gaps.incomplete
    if run_type == EOD_MISSED:
        result["missing"] = len(gaps.missing)
        result["pending"] = len(gaps.pending)
    else:
        result["missing"] = len(missing)
    if not missing:
        return _close_without_sending(result, franchise.id, run_date, run_type, "none_missing", now)

    user_ids = store.recipient_user_ids(franchise.id, [v.id for v in missing])
    if run_type == EOD_MISSED:
        user_ids |= gaps.pending_drivers
    result["recipients"] = len(user_ids)
    if not user_ids:
        return _close_without_sending(result, franchise.id, run_date, run_type, "no_recipients", now)

    subscriptions = store.active_subscriptions(franchise.id, user_ids)
    result["subscriptions"] = len(subscriptions)

    # Claim the key before sending; losing the race means another run owns it.
    marker = _insert_marker(franchise.id, run_date, run_type, "claimed")
    if marker is None:
        result["reason"] = "deduped"
        return result

    outcome = fan_out(provider, subscriptions, build_message(run_type, missing, run_date), max_workers)

    for failure in outcome.failures:
        current_app.logger.warning(
            "Push to subscription %s failed (status=%s): %s",
            failure.subscription_id, failure.status_code, failure.error,
        )
    if outcome.deactivate:
        current_app.logger.info(
            "Deactivating %d gone subscription(s) for %s: %s",
            len(outcome.deactivate), result["franchiseName"], outcome.deactivate,
        )

    _finalize(marker, outcome, now)

    result["sent"] = outcome.sent
    result["failed"] = len(outcome.failures)
    result["deactivated"] = len(outcome.deactivate)
    if not subscriptions:
        result["reason"] = "no_subscriptions"
    return result


def run_checklist_reminders(run_type: str, provider, now: Optional[datetime] = None) -> dict:
    """Process every franchise for one run type and return the JSON summary."""
    run_type = resolve_run_type(run_type)
    now = now or datetime.now(timezone.utc)
    default_tz = current_app.config.get("DEFAULT_FRANCHISE_TIMEZONE", "America/New_York")
    max_workers = current_app.config.get("NOTIFICATION_MAX_WORKERS", 8)

    franchises = store.list_franchises()
    current_app.logger.info("Checklist reminders (%s): %d franchise(s)", run_type, len(franchises))

    results = []
    for franchise in franchises:
        try:
            results.append(process_franchise(franchise, run_type, now, provider, default_tz, max_workers))
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception("Checklist reminders failed for franchise %s", franchise.id)
            results.append({
                "franchiseName": franchise.name or str(franchise.id),
                "tz": franchise.timezone or default_tz,
                "runType": run_type,
                "sent": 0,
                "error": str(e),
            })

    return {"ok": True, "runType": run_type, "results": results}
