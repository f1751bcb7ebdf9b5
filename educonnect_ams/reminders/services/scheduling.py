"""
reminders/services/scheduling.py

The Reminder Scheduler.

Keeps ScheduledReminder rows consistent with the reminders that are
currently owed. Split in two halves:

- ``plan_reconciliation`` is pure: it takes plain state (assessment,
  cohort, policies, live reminders, now) and returns what to create
  and what to cancel. No database access.
- ``reconcile`` loads that state, plans, and applies the plan through
  the store's guarded writes, auditing every change.

A reminder is owed for (assessment, student, policy) when the
assessment is active and published, the student is enrolled and has
not submitted, and ``due_date - offset`` is still in the future.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from django.db import DatabaseError, transaction
from django.utils import timezone

from courses.models import Assessment, Enrollment, Submission
from reminders import conf
from reminders.exceptions import InvariantViolation, TransientStoreError
from reminders.models import AuditEntry, ScheduledReminder

from . import audit
from .policies import active_policies

logger = logging.getLogger(__name__)


# ============================================================
# CANCELLATION REASON CODES
# ============================================================

SUBMISSION_RECEIVED = "submission_received"
STUDENT_UNENROLLED = "student_unenrolled"
ASSESSMENT_INACTIVE = "assessment_inactive"
ASSESSMENT_UNPUBLISHED = "assessment_unpublished"
ASSESSMENT_WITHDRAWN = "assessment_withdrawn"
DEADLINE_PASSED = "deadline_passed"
PAST_DUE = "past_due"
RESCHEDULED = "rescheduled"


# ============================================================
# PLAIN STATE
# ============================================================

@dataclass(frozen=True)
class CohortMember:
    student_id: int
    enrolled: bool
    submitted: bool


@dataclass(frozen=True)
class PlannedReminder:
    student_id: int
    policy_id: int
    scheduled_for: object


@dataclass(frozen=True)
class PlannedCancellation:
    reminder_id: int
    student_id: int
    policy_id: int
    reason: str


@dataclass
class ReconcilePlan:
    to_create: list = field(default_factory=list)
    to_cancel: list = field(default_factory=list)

    @property
    def is_empty(self):
        return not self.to_create and not self.to_cancel


@dataclass
class ReconcileResult:
    created: int = 0
    cancelled: int = 0
    rejected: int = 0

    def __iadd__(self, other):
        self.created += other.created
        self.cancelled += other.cancelled
        self.rejected += other.rejected
        return self


# ============================================================
# OWED PREDICATE (PURE)
# ============================================================

def ineligibility_reason(assessment, member):
    """
    Assessment- and student-level half of the owed predicate.
    Returns None when nothing rules the student out, otherwise the
    reason code.
    """
    if not assessment.is_active:
        return ASSESSMENT_INACTIVE
    if not assessment.is_published:
        return ASSESSMENT_UNPUBLISHED
    if not member.enrolled:
        return STUDENT_UNENROLLED
    if member.submitted:
        return SUBMISSION_RECEIVED
    return None


def is_schedulable(candidate, now, grace=timedelta(0)):
    """
    Time half of the owed predicate. With the default zero grace a
    candidate at or before ``now`` is never scheduled.
    """
    return candidate > now - grace


def is_owed(assessment, member, policy, now, grace=timedelta(0)):
    if ineligibility_reason(assessment, member) is not None:
        return False
    return is_schedulable(assessment.due_date - policy.offset, now, grace)


# ============================================================
# PLANNING (PURE)
# ============================================================

def plan_reconciliation(*, assessment, cohort, policies, live_reminders, now, grace=timedelta(0)):
    """
    Compute the creations and cancellations that bring the live
    reminders of ``cohort`` in line with what is owed.

    ``live_reminders`` are the pending reminders of this assessment
    for cohort students. A live reminder whose time no longer matches
    ``due_date - offset`` is superseded: it is cancelled as
    ``rescheduled`` and, when the new time is still schedulable, a
    fresh reminder replaces it.
    """
    live = {(r.student_id, r.policy_id): r for r in live_reminders}
    members = {m.student_id: m for m in cohort}

    plan = ReconcilePlan()
    covered = set()

    for member in cohort:
        reason = ineligibility_reason(assessment, member)

        for policy in policies:
            if not policy.is_active:
                continue

            key = (member.student_id, policy.id)
            covered.add(key)
            existing = live.get(key)
            candidate = assessment.due_date - policy.offset

            if reason is not None:
                if existing is not None:
                    plan.to_cancel.append(
                        PlannedCancellation(existing.id, member.student_id, policy.id, reason)
                    )
                continue

            if existing is not None and existing.scheduled_for == candidate:
                continue

            schedulable = is_schedulable(candidate, now, grace)

            if existing is not None:
                plan.to_cancel.append(
                    PlannedCancellation(
                        existing.id,
                        member.student_id,
                        policy.id,
                        RESCHEDULED if schedulable else PAST_DUE,
                    )
                )

            if schedulable:
                plan.to_create.append(
                    PlannedReminder(member.student_id, policy.id, candidate)
                )

    # Live reminders outside the active-policy grid: their policy was
    # deactivated after they were scheduled. Kept while still owed at
    # their current time; a moved due date cancels them without a
    # replacement.
    for key, existing in live.items():
        if key in covered:
            continue

        member = members.get(existing.student_id)
        if member is None:
            continue

        reason = ineligibility_reason(assessment, member)
        if reason is None and existing.scheduled_for != assessment.due_date - existing.policy.offset:
            reason = RESCHEDULED

        if reason is not None:
            plan.to_cancel.append(
                PlannedCancellation(existing.id, existing.student_id, existing.policy_id, reason)
            )

    return plan


# ============================================================
# STATE LOADING
# ============================================================

def build_cohort(assessment, student_ids=None):
    """
    Cohort for ``assessment``: the given students, or everyone enrolled
    in the course plus anyone still holding a live reminder for it.
    """
    enrolled = set(
        Enrollment.objects
        .filter(course_id=assessment.course_id)
        .values_list("student_id", flat=True)
    )
    submitted = set(
        Submission.objects
        .filter(assessment=assessment)
        .values_list("student_id", flat=True)
    )

    if student_ids is None:
        holders = (
            ScheduledReminder.objects
            .live()
            .filter(assessment=assessment)
            .values_list("student_id", flat=True)
        )
        student_ids = enrolled | set(holders)

    return [
        CohortMember(
            student_id=student_id,
            enrolled=student_id in enrolled,
            submitted=student_id in submitted,
        )
        for student_id in sorted(student_ids)
    ]


def load_live_reminders(assessment, student_ids):
    return list(
        ScheduledReminder.objects
        .live()
        .filter(assessment=assessment, student_id__in=list(student_ids))
        .select_related("policy")
    )


# ============================================================
# APPLYING
# ============================================================

def cancel_reminder(reminder, *, reason, now=None, **details):
    """
    pending -> cancelled, audited. Returns False when the reminder was
    no longer pending (already sent, cancelled or claimed).
    """
    now = now or timezone.now()

    if not ScheduledReminder.objects.cancel(reminder.pk, reason=reason, now=now):
        return False

    audit.record(
        AuditEntry.Action.CANCELLED,
        reminder_id=reminder.pk,
        assessment_id=reminder.assessment_id,
        student_id=reminder.student_id,
        reason=reason,
        policy_id=reminder.policy_id,
        scheduled_for=reminder.scheduled_for,
        **details,
    )
    logger.info(
        "Cancelled reminder %s (assessment=%s student=%s reason=%s)",
        reminder.pk, reminder.assessment_id, reminder.student_id, reason,
    )
    return True


def apply_plan(plan, *, assessment, live_reminders, now):
    result = ReconcileResult()
    by_id = {r.pk: r for r in live_reminders}

    # Cancellations first: a rescheduled triple must free its live
    # slot before the replacement is inserted.
    for cancellation in plan.to_cancel:
        reminder = by_id[cancellation.reminder_id]
        if cancel_reminder(reminder, reason=cancellation.reason, now=now):
            result.cancelled += 1

    for planned in plan.to_create:
        try:
            reminder = ScheduledReminder.objects.insert_pending(
                assessment_id=assessment.pk,
                student_id=planned.student_id,
                policy_id=planned.policy_id,
                scheduled_for=planned.scheduled_for,
            )
        except InvariantViolation as exc:
            # Concurrent reconcile got there first
            logger.warning("Rejected duplicate reminder: %s", exc)
            result.rejected += 1
            continue

        audit.record(
            AuditEntry.Action.SCHEDULED,
            reminder=reminder,
            policy_id=planned.policy_id,
            scheduled_for=planned.scheduled_for,
            due_date=assessment.due_date,
        )
        result.created += 1

    return result


# ============================================================
# RECONCILE
# ============================================================

def reconcile(assessment, cohort, policies=None, now=None):
    """
    Reconcile the reminders of ``cohort`` for ``assessment``.

    Runs in one transaction. A database failure is raised as
    TransientStoreError so the triggering operation fails loudly.
    """
    now = now or timezone.now()
    policies = active_policies() if policies is None else policies
    grace = conf.get("REMINDER_GRACE_WINDOW")

    try:
        with transaction.atomic():
            live_reminders = load_live_reminders(
                assessment, [m.student_id for m in cohort]
            )
            plan = plan_reconciliation(
                assessment=assessment,
                cohort=cohort,
                policies=policies,
                live_reminders=live_reminders,
                now=now,
                grace=grace,
            )
            if plan.is_empty:
                return ReconcileResult()

            result = apply_plan(
                plan,
                assessment=assessment,
                live_reminders=live_reminders,
                now=now,
            )
    except DatabaseError as exc:
        logger.exception("Reconcile failed for assessment %s", assessment.pk)
        raise TransientStoreError(
            f"reconcile failed for assessment {assessment.pk}: {exc}"
        ) from exc

    logger.info(
        "Reconciled assessment %s: %s scheduled, %s cancelled, %s rejected",
        assessment.pk, result.created, result.cancelled, result.rejected,
    )
    return result


def reconcile_assessment(assessment, now=None):
    """Published / rescheduled / deactivated: whole cohort x active policies."""
    return reconcile(assessment, build_cohort(assessment), now=now)


def reconcile_student(course, student, now=None):
    """Enrolled: one student x every open assessment of the course."""
    now = now or timezone.now()
    result = ReconcileResult()

    assessments = Assessment.objects.filter(
        course=course,
        is_active=True,
        is_published=True,
        due_date__gt=now,
    )
    for assessment in assessments:
        result += reconcile(
            assessment,
            build_cohort(assessment, student_ids=[student.pk]),
            now=now,
        )
    return result


def reconcile_open_assessments(now=None):
    """Catch-all: every active, published, future assessment."""
    now = now or timezone.now()
    result = ReconcileResult()

    assessments = Assessment.objects.filter(
        is_active=True,
        is_published=True,
        due_date__gt=now,
    )
    for assessment in assessments:
        result += reconcile_assessment(assessment, now=now)
    return result


# ============================================================
# DIRECT CANCELLATIONS (SUBMISSION / UNENROLL / WITHDRAW)
# ============================================================

def _cancel_all(queryset, *, reason, now=None, **details):
    now = now or timezone.now()
    cancelled = 0

    try:
        with transaction.atomic():
            for reminder in queryset.live():
                if cancel_reminder(reminder, reason=reason, now=now, **details):
                    cancelled += 1
    except DatabaseError as exc:
        logger.exception("Cancelling reminders failed (reason=%s)", reason)
        raise TransientStoreError(f"cancel failed ({reason}): {exc}") from exc

    return cancelled


def cancel_for_submission(assessment, student, submission=None, now=None):
    details = {}
    if submission is not None:
        details["submission_id"] = submission.pk

    return _cancel_all(
        ScheduledReminder.objects.filter(assessment=assessment, student=student),
        reason=SUBMISSION_RECEIVED,
        now=now,
        **details,
    )


def cancel_for_unenrollment(course, student, now=None):
    return _cancel_all(
        ScheduledReminder.objects.filter(assessment__course=course, student=student),
        reason=STUDENT_UNENROLLED,
        now=now,
        course_id=course.pk,
    )


def cancel_for_withdrawal(assessment, now=None):
    """Runs from pre_delete, before the reminders cascade away."""
    return _cancel_all(
        ScheduledReminder.objects.filter(assessment=assessment),
        reason=ASSESSMENT_WITHDRAWN,
        now=now,
    )
