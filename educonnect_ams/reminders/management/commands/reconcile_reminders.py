"""
reminders/management/commands/reconcile_reminders.py

Catch-all recovery: re-run reconciliation for every active,
published, future assessment (or one assessment). Picks up anything
a missed event left behind. Idempotent.
"""

from django.core.management.base import BaseCommand, CommandError

from courses.models import Assessment
from reminders.services.scheduling import reconcile_assessment, reconcile_open_assessments


class Command(BaseCommand):
    help = "Reconcile scheduled reminders against assessments, enrollments and submissions"

    def add_arguments(self, parser):
        parser.add_argument(
            "--assessment",
            type=int,
            default=None,
            help="Only reconcile this assessment id",
        )

    def handle(self, *args, **options):
        assessment_id = options["assessment"]

        if assessment_id is not None:
            try:
                assessment = Assessment.objects.get(pk=assessment_id)
            except Assessment.DoesNotExist:
                raise CommandError(f"Assessment {assessment_id} does not exist")
            result = reconcile_assessment(assessment)
        else:
            result = reconcile_open_assessments()

        self.stdout.write(
            self.style.SUCCESS(
                f"Reconciled: {result.created} scheduled, "
                f"{result.cancelled} cancelled, {result.rejected} rejected"
            )
        )
