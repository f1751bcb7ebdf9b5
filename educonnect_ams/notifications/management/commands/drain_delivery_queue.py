"""
notifications/management/commands/drain_delivery_queue.py

Send one bounded batch of queued reminder emails, retrying failures
with backoff. Independent of the reminder tick.
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from notifications.services.delivery import drain_delivery_queue


class Command(BaseCommand):
    help = "Drain the email delivery queue (one bounded batch)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="Maximum emails to attempt in this run",
        )

    def handle(self, *args, **options):
        now = timezone.now()

        self.stdout.write(
            self.style.NOTICE(f"[{now:%Y-%m-%d %H:%M:%S}] Draining delivery queue")
        )

        result = drain_delivery_queue(now, batch_size=options["batch_size"])

        self.stdout.write(
            self.style.SUCCESS(
                f"[{now:%Y-%m-%d %H:%M:%S}] Completed: "
                f"{result.sent} sent, {result.retried} retried, "
                f"{result.failed} failed, {result.released} stale claims released"
            )
        )
