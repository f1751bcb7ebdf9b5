"""
notifications/services/delivery.py

Reminder notifications and the email delivery queue.

The dispatcher calls ``create_reminder_notification`` inside its
claim transaction. Email jobs are drained separately by
``drain_delivery_queue``:

    pending -> processing -> sent
                          -> pending (retry after backoff)
                          -> failed  (attempts exhausted)
"""

import logging
import time
from dataclasses import dataclass

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from notifications.models import DeliveryJob, Notification
from reminders import conf
from reminders.exceptions import TransportError
from reminders.models import AuditEntry
from reminders.services import audit

from .content import build_reminder_content, build_reminder_email
from .preferences import resolve_channel
from .transport import send_email

logger = logging.getLogger(__name__)


# ============================================================
# REMINDER NOTIFICATION (CALLED BY THE DISPATCHER)
# ============================================================

def create_reminder_notification(reminder, *, now=None):
    """
    Create the dashboard notification for a claimed reminder and,
    when the channel includes email, enqueue its delivery job.

    Returns (notification, job); job is None for dashboard-only.
    """
    now = now or timezone.now()
    student = reminder.student
    content = build_reminder_content(reminder)

    notification = Notification.objects.create(
        user=student,
        reminder=reminder,
        kind=Notification.Kind.REMINDER,
        channel=resolve_channel(student),
        title=content.title,
        message=content.message,
        reference_type="assessment",
        reference_id=reminder.assessment_id,
        payload=content.payload,
        created_at=now,
        expires_at=reminder.assessment.due_date,
    )

    job = None
    if notification.includes_email:
        email = build_reminder_email(reminder)
        job = enqueue_email(
            notification,
            subject=email.subject,
            body_text=email.body_text,
            body_html=email.body_html,
            now=now,
        )

    return notification, job


def enqueue_email(notification, *, subject, body_text, body_html="", now=None):
    user = notification.user
    return DeliveryJob.objects.create(
        notification=notification,
        recipient=user.email,
        recipient_name=user.get_full_name(),
        subject=subject,
        body_text=body_text,
        body_html=body_html,
        max_attempts=conf.get("DELIVERY_MAX_ATTEMPTS"),
        scheduled_for=now or timezone.now(),
    )


# ============================================================
# RETRY POLICY
# ============================================================

def backoff_for(attempts):
    """Exponential backoff after ``attempts`` failures, capped."""
    base = conf.get("DELIVERY_RETRY_BACKOFF")
    cap = conf.get("DELIVERY_RETRY_BACKOFF_CAP")
    return min(base * (2 ** max(attempts - 1, 0)), cap)


# ============================================================
# JOB OUTCOMES
# ============================================================

def _audit_delivery(job, action, **details):
    notification = job.notification
    if notification is None:
        audit.record(action, delivery_job_id=job.pk, channel="email", **details)
        return

    # reminder_id is None once the assessment was withdrawn
    audit.record(
        action,
        reminder_id=notification.reminder_id,
        assessment_id=notification.reference_id,
        student_id=notification.user_id,
        notification_id=notification.pk,
        delivery_job_id=job.pk,
        channel="email",
        **details,
    )


@transaction.atomic
def mark_sent(job, *, now):
    updated = DeliveryJob.objects.filter(
        pk=job.pk,
        status=DeliveryJob.Status.PROCESSING,
    ).update(
        status=DeliveryJob.Status.SENT,
        attempts=F("attempts") + 1,
        last_attempt_at=now,
        sent_at=now,
        last_error="",
    )
    if not updated:
        return False

    if job.notification_id:
        Notification.objects.filter(pk=job.notification_id).update(
            email_sent=True,
            email_sent_at=now,
        )

    _audit_delivery(job, AuditEntry.Action.SENT, recipient=job.recipient)
    return True


@transaction.atomic
def handle_failure(job, error, *, now):
    """
    Count a failed send. Returns True when the job went terminal.
    """
    attempts = job.attempts + 1
    terminal = attempts >= job.max_attempts

    fields = {
        "attempts": attempts,
        "last_attempt_at": now,
        "last_error": str(error),
        "claimed_at": None,
    }
    if terminal:
        fields["status"] = DeliveryJob.Status.FAILED
    else:
        fields["status"] = DeliveryJob.Status.PENDING
        fields["scheduled_for"] = now + backoff_for(attempts)

    updated = DeliveryJob.objects.filter(
        pk=job.pk,
        status=DeliveryJob.Status.PROCESSING,
    ).update(**fields)
    if not updated:
        return False

    if terminal:
        _audit_delivery(
            job,
            AuditEntry.Action.FAILED,
            recipient=job.recipient,
            attempts=attempts,
            error=str(error),
        )
        logger.error(
            "Delivery job %s failed permanently after %s attempts: %s",
            job.pk, attempts, error,
        )
    else:
        logger.warning(
            "Delivery job %s attempt %s failed, retrying at %s: %s",
            job.pk, attempts, fields["scheduled_for"], error,
        )
    return terminal


# ============================================================
# DRAIN
# ============================================================

@dataclass
class DrainResult:
    sent: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0
    released: int = 0


def deliver_job(job, *, now):
    """Send one claimed job. Returns "sent", "retry" or "failed"."""
    try:
        send_email(
            recipient=job.recipient,
            subject=job.subject,
            body_text=job.body_text,
            body_html=job.body_html,
        )
    except TransportError as exc:
        return "failed" if handle_failure(job, exc, now=now) else "retry"
    except Exception as exc:
        # Anything else the backend raises still counts as an attempt,
        # otherwise the job would sit in processing and block the queue.
        logger.exception("Unexpected error sending delivery job %s", job.pk)
        error = f"{exc.__class__.__name__}: {exc}"
        return "failed" if handle_failure(job, error, now=now) else "retry"

    mark_sent(job, now=now)
    return "sent"


def drain_delivery_queue(now=None, *, batch_size=None, budget_seconds=None):
    """
    Drain one bounded batch of ready email jobs.

    Stale ``processing`` claims are released first. Jobs left over
    when the batch or time budget runs out stay pending for the next
    run.
    """
    now = now or timezone.now()
    batch_size = batch_size or conf.get("DELIVERY_BATCH_SIZE")
    if budget_seconds is None:
        budget_seconds = conf.get("REMINDER_BATCH_BUDGET_SECONDS")

    result = DrainResult()
    result.released = DeliveryJob.objects.release_stale(
        claimed_before=now - conf.get("DELIVERY_STALE_CLAIM_AFTER"),
    )
    if result.released:
        logger.warning("Released %s stale delivery claims", result.released)

    deadline = time.monotonic() + budget_seconds
    job_ids = list(
        DeliveryJob.objects.ready(now).values_list("pk", flat=True)[:batch_size]
    )

    for pk in job_ids:
        if time.monotonic() >= deadline:
            logger.warning("Delivery drain budget exhausted, leaving remaining jobs pending")
            break

        if not DeliveryJob.objects.claim(pk, now=now):
            result.skipped += 1
            continue

        job = DeliveryJob.objects.select_related("notification").get(pk=pk)
        outcome = deliver_job(job, now=now)

        if outcome == "sent":
            result.sent += 1
        elif outcome == "retry":
            result.retried += 1
        else:
            result.failed += 1

    logger.info(
        "Delivery drain: %s sent, %s retried, %s failed, %s skipped",
        result.sent, result.retried, result.failed, result.skipped,
    )
    return result
