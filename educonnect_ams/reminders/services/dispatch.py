"""
reminders/services/dispatch.py

The Dispatcher (tick processor).

Each tick takes a bounded batch of due reminders, re-checks that each
is still owed, claims it with a conditional update and turns it into
a Notification (plus a DeliveryJob when email applies). The claim and
everything it produces commit together, so a reminder becomes ``sent``
at most once and yields at most one Notification.
"""

import logging
import time
from dataclasses import dataclass

from django.db import DatabaseError, transaction
from django.utils import timezone

from courses.models import Enrollment, Submission
from notifications.services.delivery import create_reminder_notification
from reminders import conf
from reminders.models import AuditEntry, ScheduledReminder

from . import audit
from .scheduling import DEADLINE_PASSED, CohortMember, cancel_reminder, ineligibility_reason

logger = logging.getLogger(__name__)


SENT = "sent"
CANCELLED = "cancelled"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class DispatchResult:
    sent: int = 0
    cancelled: int = 0
    skipped: int = 0
    failed: int = 0
    released: int = 0

    def record(self, outcome):
        setattr(self, outcome, getattr(self, outcome) + 1)


# ============================================================
# DISPATCH-TIME OWED CHECK
# ============================================================

def dispatch_block_reason(reminder, now):
    """
    Why a due reminder must not be delivered, or None when it is
    still owed. The due date must still be ahead of ``now``.
    """
    assessment = reminder.assessment
    member = CohortMember(
        student_id=reminder.student_id,
        enrolled=Enrollment.objects.filter(
            course_id=assessment.course_id,
            student_id=reminder.student_id,
        ).exists(),
        submitted=Submission.objects.filter(
            assessment_id=assessment.pk,
            student_id=reminder.student_id,
        ).exists(),
    )

    reason = ineligibility_reason(assessment, member)
    if reason is not None:
        return reason
    if assessment.due_date <= now:
        return DEADLINE_PASSED
    return None


# ============================================================
# SINGLE REMINDER
# ============================================================

def dispatch_reminder(reminder, *, now):
    """
    Dispatch one due reminder. Returns one of SENT, CANCELLED,
    SKIPPED (another worker or a cancellation got there first) or
    FAILED (store error, left pending for the next tick unless the
    attempts are exhausted).
    """
    try:
        with transaction.atomic():
            reason = dispatch_block_reason(reminder, now)
            if reason is not None:
                if cancel_reminder(reminder, reason=reason, now=now, stage="dispatch"):
                    return CANCELLED
                return SKIPPED

            if not ScheduledReminder.objects.claim(reminder.pk, now=now):
                return SKIPPED

            notification, job = create_reminder_notification(reminder, now=now)

            audit.record(
                AuditEntry.Action.SENT,
                reminder=reminder,
                channel=notification.channel,
                notification_id=notification.pk,
                delivery_job_id=job.pk if job else None,
                policy_id=reminder.policy_id,
            )
    except DatabaseError as exc:
        _record_failure(reminder, exc, now=now)
        return FAILED

    logger.info(
        "Dispatched reminder %s to student %s (%s)",
        reminder.pk, reminder.student_id, notification.channel,
    )
    return SENT


def _record_failure(reminder, error, *, now):
    max_attempts = conf.get("REMINDER_MAX_DISPATCH_ATTEMPTS")
    logger.warning("Dispatch of reminder %s failed: %s", reminder.pk, error)

    try:
        with transaction.atomic():
            terminal = ScheduledReminder.objects.record_dispatch_failure(
                reminder.pk,
                error=str(error),
                max_attempts=max_attempts,
                now=now,
            )
            audit.record(
                AuditEntry.Action.FAILED,
                reminder=reminder,
                error=str(error),
                terminal=terminal,
            )
    except DatabaseError:
        logger.exception("Could not record dispatch failure for reminder %s", reminder.pk)
        return

    if terminal:
        logger.error(
            "Reminder %s failed permanently after %s dispatch attempts",
            reminder.pk, max_attempts,
        )


# ============================================================
# TICK
# ============================================================

def process_due(now=None, *, batch_size=None, budget_seconds=None):
    """
    Run one dispatcher tick.

    Claims left behind by a crashed tick (``sent`` without a
    Notification, older than the stale grace) are released first.
    Reminders beyond the batch size or the time budget stay pending.
    """
    now = now or timezone.now()
    batch_size = batch_size or conf.get("REMINDER_DISPATCH_BATCH_SIZE")
    if budget_seconds is None:
        budget_seconds = conf.get("REMINDER_BATCH_BUDGET_SECONDS")

    result = DispatchResult()
    result.released = ScheduledReminder.objects.release_stale_claims(
        claimed_before=now - conf.get("REMINDER_STALE_CLAIM_AFTER"),
        now=now,
    )
    if result.released:
        logger.warning("Released %s stale reminder claims", result.released)

    deadline = time.monotonic() + budget_seconds
    due = list(
        ScheduledReminder.objects
        .due(now)
        .select_related("assessment__course", "student", "policy")
        .order_by("scheduled_for", "id")[:batch_size]
    )

    for reminder in due:
        if time.monotonic() >= deadline:
            logger.warning("Dispatch budget exhausted, leaving remaining reminders pending")
            break
        result.record(dispatch_reminder(reminder, now=now))

    logger.info(
        "Dispatch tick: %s sent, %s cancelled, %s skipped, %s failed",
        result.sent, result.cancelled, result.skipped, result.failed,
    )
    return result
