"""
Reminder engine settings with defaults.

Values are read on every call so ``override_settings`` applies.
"""

from datetime import timedelta

from django.conf import settings

DEFAULTS = {
    "ENABLE_SCHEDULER": False,
    "REMINDER_TICK_MINUTES": 5,
    "DELIVERY_DRAIN_MINUTES": 5,
    "REMINDER_DISPATCH_BATCH_SIZE": 100,
    "REMINDER_BATCH_BUDGET_SECONDS": 60,
    "REMINDER_GRACE_WINDOW": timedelta(0),
    "REMINDER_MAX_DISPATCH_ATTEMPTS": 5,
    "REMINDER_STALE_CLAIM_AFTER": timedelta(minutes=15),
    "DELIVERY_BATCH_SIZE": 20,
    "DELIVERY_MAX_ATTEMPTS": 3,
    "DELIVERY_RETRY_BACKOFF": timedelta(minutes=5),
    "DELIVERY_RETRY_BACKOFF_CAP": timedelta(hours=6),
    "DELIVERY_STALE_CLAIM_AFTER": timedelta(minutes=15),
    "APP_URL": "https://your-app.com",
}


def get(name):
    return getattr(settings, name, DEFAULTS[name])
