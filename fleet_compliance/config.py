# fleet_compliance/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "your_secret_key_here")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shared secret the external scheduler sends with every job call.
    CRON_SECRET = os.getenv("CRON_SECRET")

    # Web push (VAPID) signing
    VAPID_PUBLIC_KEY = os.getenv("VAPID_PUBLIC_KEY")
    VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY")
    VAPID_SUBJECT = os.getenv("VAPID_SUBJECT", "mailto:admin@example.com")

    DEFAULT_FRANCHISE_TIMEZONE = os.getenv("DEFAULT_FRANCHISE_TIMEZONE", "America/New_York")
    NOTIFICATION_MAX_WORKERS = _int_env("NOTIFICATION_MAX_WORKERS", 8)

    # Dashboard tuning
    ACTION_ITEM_LIMIT = _int_env("ACTION_ITEM_LIMIT", 10)
    MAINTENANCE_DUE_SOON_DAYS = _int_env("MAINTENANCE_DUE_SOON_DAYS", 7)
    MAINTENANCE_DUE_SOON_ODOMETER = _int_env("MAINTENANCE_DUE_SOON_ODOMETER", 500)
