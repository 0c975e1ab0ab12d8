# fleet_compliance/routes/cron.py
from __future__ import annotations

import hmac

from flask import Blueprint, current_app, jsonify, request

from fleet_compliance.services.clock import parse_instant
from fleet_compliance.services.errors import ConfigurationError, InputError, StoreReadError
from fleet_compliance.services.notifications import resolve_run_type, run_checklist_reminders
from fleet_compliance.services.push import WebPushProvider

cron_bp = Blueprint("cron", __name__)


def _supplied_secret() -> str:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.headers.get("X-Scheduler-Secret", "").strip()


def is_authorized() -> bool:
    secret = current_app.config.get("CRON_SECRET")
    supplied = _supplied_secret()
    if not secret or not supplied:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), secret.encode("utf-8"))


def push_provider():
    """Provider registered on the app (tests, alternate transports) or the VAPID web-push one."""
    provider = current_app.extensions.get("push_provider")
    if provider is not None:
        return provider
    return WebPushProvider.from_config(current_app.config)


# -----------------------------------------------------------------------------
# GET|POST /api/cron/checklist-reminders?run=pre_trip|end_day|eod[&now=ISO]
# -----------------------------------------------------------------------------
@cron_bp.route("/api/cron/checklist-reminders", methods=["GET", "POST"])
def checklist_reminders():
    if not is_authorized():
        return jsonify({"error": "Unauthorized"}), 401

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    selector = request.args.get("run") or request.args.get("runType") or body.get("run")
    try:
        run_type = resolve_run_type(selector)
        now = parse_instant(request.args.get("now") or body.get("now"))
    except InputError as e:
        return jsonify({"error": str(e)}), 400

    try:
        provider = push_provider()
    except ConfigurationError as e:
        current_app.logger.error("Checklist reminders not sent: %s", e)
        return jsonify({"error": "Missing VAPID keys"}), 500

    try:
        summary = run_checklist_reminders(run_type, provider, now=now)
    except StoreReadError as e:
        current_app.logger.exception("Checklist reminders aborted: %s", e)
        return jsonify({"ok": False, "error": "Failed to load franchises"}), 500

    return jsonify(summary), 200
