"""
reminders/management/commands/process_due_reminders.py

One dispatcher tick: turn due reminders into notifications.
Run by the in-process scheduler every few minutes, or by cron.
Idempotent; overlapping runs are safe.
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from reminders.services.dispatch import process_due


class Command(BaseCommand):
    help = "Dispatch due deadline reminders (one bounded batch)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="Maximum reminders to dispatch in this run",
        )

    def handle(self, *args, **options):
        now = timezone.now()

        self.stdout.write(
            self.style.NOTICE(f"[{now:%Y-%m-%d %H:%M:%S}] Processing due reminders")
        )

        result = process_due(now, batch_size=options["batch_size"])

        self.stdout.write(
            self.style.SUCCESS(
                f"[{now:%Y-%m-%d %H:%M:%S}] Completed: "
                f"{result.sent} sent, {result.cancelled} cancelled, "
                f"{result.skipped} skipped, {result.failed} failed, "
                f"{result.released} stale claims released"
            )
        )
