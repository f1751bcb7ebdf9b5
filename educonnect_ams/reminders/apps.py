from django.apps import AppConfig
import os


class RemindersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "reminders"

    def ready(self):
        # --------------------------------------------------
        # Load domain event receivers (REQUIRED)
        # --------------------------------------------------
        import reminders.signals  # noqa: F401

        # --------------------------------------------------
        # Start APScheduler
        # --------------------------------------------------
        # Prevent a second scheduler from the autoreloader parent
        if os.environ.get("RUN_MAIN") != "true":
            return

        from .scheduler import start_scheduler
        start_scheduler()
