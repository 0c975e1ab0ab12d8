# fleet_compliance/routes/__init__.py
from .cron import cron_bp
from .manager_dashboard import manager_dashboard_bp


def register_blueprints(app):
    app.register_blueprint(manager_dashboard_bp)
    app.register_blueprint(cron_bp)
