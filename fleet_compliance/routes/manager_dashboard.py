# fleet_compliance/routes/manager_dashboard.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from flask import Blueprint, current_app, jsonify, request

from fleet_compliance.services import store
from fleet_compliance.services.action_items import build_action_items
from fleet_compliance.services.clock import (
    lookback_start,
    parse_instant,
    today_in_tz,
    trailing_days,
    yesterday,
)
from fleet_compliance.services.compliance import (
    CADENCE_LOOKBACK_DAYS,
    build_compliance_calendar,
    validate_window,
)
from fleet_compliance.services.due_status import classify, forecast_bucket, sort_most_overdue
from fleet_compliance.services.errors import InputError, StoreReadError

MAINTENANCE_DUE_LIMIT = 50

manager_dashboard_bp = Blueprint("manager_dashboard", __name__)


# -----------------------------------------------------------------------------
# Error mapping
# -----------------------------------------------------------------------------
@manager_dashboard_bp.errorhandler(InputError)
def _input_error(e):
    return jsonify({"error": str(e)}), 400


@manager_dashboard_bp.errorhandler(StoreReadError)
def _store_error(e):
    current_app.logger.error("Dashboard read failed: %s", e)
    return jsonify({"error": "Failed to load dashboard data"}), 500


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _vehicle_id_arg() -> Optional[int]:
    raw = (request.args.get("vehicle_id") or "").strip()
    if not raw or raw.lower() == "all":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise InputError("vehicle_id must be an integer") from exc


def _franchise_today(franchise):
    """Franchise-local calendar day for `now` (query override or wall clock)."""
    tz = franchise.timezone or current_app.config.get("DEFAULT_FRANCHISE_TIMEZONE", "America/New_York")
    now = parse_instant(request.args.get("now")) or datetime.now(timezone.utc)
    return tz, now, today_in_tz(now, tz)


def _scope(franchise_id: int):
    """(franchise, vehicles, vehicle_id, error_response); error_response is None on success."""
    franchise = store.get_franchise(franchise_id)
    if franchise is None:
        return None, None, None, (jsonify({"error": "Franchise not found"}), 404)
    vehicle_id = _vehicle_id_arg()
    vehicles = store.active_vehicles(franchise_id, vehicle_id)
    if vehicle_id is not None and not vehicles:
        return None, None, None, (jsonify({"error": "Vehicle not found"}), 404)
    return franchise, vehicles, vehicle_id, None


# -----------------------------------------------------------------------------
# GET /api/franchises/<id>/compliance?window_days=14&vehicle_id=
# -----------------------------------------------------------------------------
@manager_dashboard_bp.get("/api/franchises/<int:franchise_id>/compliance")
def compliance_calendar(franchise_id: int):
    window = validate_window(request.args.get("window_days", 14))
    franchise, vehicles, vehicle_id, error = _scope(franchise_id)
    if error:
        return error

    tz, _now, today = _franchise_today(franchise)
    days = trailing_days(today, window)
    ids = [v.id for v in vehicles]

    daily = store.checklist_submissions("daily", franchise_id, days[0], today, ids)
    weekly = store.checklist_submissions(
        "weekly", franchise_id, lookback_start(today, CADENCE_LOOKBACK_DAYS["weekly"]), today, ids
    )
    monthly = store.checklist_submissions(
        "monthly", franchise_id, lookback_start(today, CADENCE_LOOKBACK_DAYS["monthly"]), today, ids
    )
    intervals = store.cadence_intervals(franchise_id)

    calendar = build_compliance_calendar(
        vehicles, days, today, daily, weekly, monthly,
        intervals=intervals,
        selected_vehicle_id=vehicle_id,
    )

    payload = calendar.to_dict()
    payload.update({
        "franchise_id": franchise_id,
        "timezone": tz,
        "window_days": window,
        "vehicle_id": vehicle_id,
        "intervals": intervals,
    })
    return jsonify(payload), 200


# -----------------------------------------------------------------------------
# GET /api/franchises/<id>/action-items?vehicle_id=
# -----------------------------------------------------------------------------
@manager_dashboard_bp.get("/api/franchises/<int:franchise_id>/action-items")
def action_items(franchise_id: int):
    franchise, vehicles, vehicle_id, error = _scope(franchise_id)
    if error:
        return error

    tz, now, today = _franchise_today(franchise)
    missed_day = yesterday(today)
    ids = [v.id for v in vehicles]

    items = build_action_items(
        vehicles,
        store.issues_for_vehicles(ids),
        store.daily_log_vehicle_ids(ids, missed_day),
        store.open_maintenance(franchise_id, ids),
        today=today,
        now=now,
        missed_day=missed_day,
        limit=current_app.config.get("ACTION_ITEM_LIMIT", 10),
        due_soon_days=current_app.config.get("MAINTENANCE_DUE_SOON_DAYS", 7),
        due_soon_odometer=current_app.config.get("MAINTENANCE_DUE_SOON_ODOMETER", 500),
    )

    return jsonify({
        "franchise_id": franchise_id,
        "timezone": tz,
        "today": today.isoformat(),
        "vehicle_id": vehicle_id,
        "items": [i.to_dict() for i in items],
    }), 200


# -----------------------------------------------------------------------------
# GET /api/franchises/<id>/maintenance-due
# -----------------------------------------------------------------------------
@manager_dashboard_bp.get("/api/franchises/<int:franchise_id>/maintenance-due")
def maintenance_due(franchise_id: int):
    franchise = store.get_franchise(franchise_id)
    if franchise is None:
        return jsonify({"error": "Franchise not found"}), 404

    tz, _now, today = _franchise_today(franchise)

    overdue = []
    for m in store.open_maintenance(franchise_id):
        due = classify(m.due_date, m.due_odometer, today, m.current_odometer)
        if due.is_overdue:
            overdue.append((m, due))

    by_id = {m.id: due for m, due in overdue}
    ranked = sort_most_overdue(m for m, _ in overdue)[:MAINTENANCE_DUE_LIMIT]

    items = []
    for m in ranked:
        due = by_id[m.id]
        items.append({
            "id": m.id,
            "vehicle_id": m.vehicle_id,
            "vehicle_number": m.vehicle_number,
            "maintenance_type": m.maintenance_type,
            "description": m.description,
            "due_date": m.due_date.isoformat() if m.due_date else None,
            "due_odometer": m.due_odometer,
            "current_odometer": m.current_odometer,
            "due_reason": due.trigger,
            "days_overdue": due.days_overdue,
            "odometer_overage": due.odometer_overage,
            "bucket": forecast_bucket(m.due_date, today) if m.due_date else None,
        })

    return jsonify({
        "franchise_id": franchise_id,
        "timezone": tz,
        "today": today.isoformat(),
        "vehicles_due_for_service": len({m.vehicle_id for m, _ in overdue}),
        "total_overdue": len(overdue),
        "items": items,
    }), 200
