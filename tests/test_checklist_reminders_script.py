# tests/test_checklist_reminders_script.py
import json

from fleet_compliance.scripts import checklist_reminders

from .builders import add_franchise, add_manager, add_vehicle, subscribe


def test_cli_runs_job_with_registered_provider(test_app, fake_push, monkeypatch, capsys):
    f = add_franchise("Pasadena", "America/Los_Angeles")
    add_vehicle(f, "101")
    add_manager(f, "mgr")
    subscribe(f, "mgr", "https://push.example/one")
    monkeypatch.setattr(checklist_reminders, "create_app", lambda: test_app)

    code = checklist_reminders.main(["--run", "pre_trip", "--now", "2024-03-01T07:30:00Z"])

    assert code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["runType"] == "pre_trip_9am"
    assert summary["results"][0]["runDate"] == "2024-02-29"
    assert summary["results"][0]["sent"] == 1
    assert len(fake_push.calls) == 1


def test_cli_exit_code_reports_franchise_errors(test_app, fake_push, monkeypatch, capsys):
    add_franchise("Nowhere", "Not/AZone")
    monkeypatch.setattr(checklist_reminders, "create_app", lambda: test_app)

    code = checklist_reminders.main(["--run", "end_day"])

    assert code == 1
    assert "Unknown timezone" in capsys.readouterr().out
