# scripts/checklist_reminders.py
#
#   python -m fleet_compliance.scripts.checklist_reminders --run pre_trip
#   python -m fleet_compliance.scripts.checklist_reminders --run end_day --now 2024-03-01T02:00:00Z
#   python -m fleet_compliance.scripts.checklist_reminders --run eod      # yesterday, skipped on Sundays
#
import argparse
import json
import logging

from fleet_compliance import create_app
from fleet_compliance.services.clock import parse_instant
from fleet_compliance.services.notifications import RUN_TYPES, run_checklist_reminders
from fleet_compliance.services.push import WebPushProvider

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
log = logging.getLogger("checklist_reminders")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Send missing-checklist push reminders for every franchise")
    parser.add_argument("--run", required=True, help=f"pre_trip | end_day | eod (or {' | '.join(RUN_TYPES)})")
    parser.add_argument("--now", help="ISO-8601 instant to evaluate as 'now' (default: current UTC time)")
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        provider = app.extensions.get("push_provider") or WebPushProvider.from_config(app.config)
        summary = run_checklist_reminders(args.run, provider, now=parse_instant(args.now))

    errors = [r for r in summary["results"] if r.get("error")]
    sent = sum(r.get("sent", 0) for r in summary["results"])
    log.info("Done. runType=%s franchises=%s sent=%s errors=%s",
             summary["runType"], len(summary["results"]), sent, len(errors))
    print(json.dumps(summary, indent=2))
    return 1 if errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
