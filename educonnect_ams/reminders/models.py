from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MaxValueValidator
from django.db import IntegrityError, models, transaction
from django.db.models import F, Q
from django.utils import timezone

from .exceptions import InvariantViolation


# ============================================================
# POLICY STORE
# ============================================================

class ReminderPolicy(models.Model):
    """
    A fixed lead time before a due date at which a reminder fires.

    The offset is frozen once any reminder references the policy;
    only the name and the active flag stay editable. Deactivating a
    policy affects future reconciliation only.
    """

    name = models.CharField(max_length=100)

    days_before = models.PositiveIntegerField(default=0)
    hours_before = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(23)],
    )

    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "reminder_policies"
        ordering = ["-days_before", "-hours_before"]
        verbose_name_plural = "reminder policies"
        constraints = [
            models.UniqueConstraint(
                fields=["days_before", "hours_before"],
                name="reminder_policy_offset_unique",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.offset_label})"

    @property
    def offset(self):
        return timedelta(days=self.days_before, hours=self.hours_before)

    @property
    def offset_label(self):
        parts = []
        if self.days_before:
            parts.append(f"{self.days_before} day(s)")
        if self.hours_before:
            parts.append(f"{self.hours_before} hour(s)")
        return " ".join(parts)

    def clean(self):
        if self.hours_before >= 24:
            raise ValidationError({"hours_before": "Must be between 0 and 23."})
        if self.days_before == 0 and self.hours_before == 0:
            raise ValidationError("A reminder policy needs a non-zero offset.")

    def save(self, *args, **kwargs):
        if self.pk:
            stored = (
                ReminderPolicy.objects
                .filter(pk=self.pk)
                .values("days_before", "hours_before")
                .first()
            )
            offset_changed = stored is not None and (
                stored["days_before"] != self.days_before
                or stored["hours_before"] != self.hours_before
            )
            if offset_changed and self.reminders.exists():
                raise ValidationError(
                    "The offset of a policy cannot change once reminders reference it."
                )
        super().save(*args, **kwargs)


# ============================================================
# REMINDER STORE
# ============================================================

class ScheduledReminderQuerySet(models.QuerySet):
    """
    Every status write goes through a conditional update keyed on the
    row's current status, so overlapping ticks and reconciles can
    never both win the same transition.
    """

    def live(self):
        return self.filter(status=ScheduledReminder.Status.PENDING)

    def due(self, now):
        return self.live().filter(scheduled_for__lte=now)

    def for_student(self, student):
        return self.filter(student=student)

    def insert_pending(self, *, assessment_id, student_id, policy_id, scheduled_for):
        """
        Create a live reminder. A second live reminder for the same
        triple is rejected by the partial unique constraint and
        surfaces as InvariantViolation.
        """
        try:
            with transaction.atomic():
                return self.create(
                    assessment_id=assessment_id,
                    student_id=student_id,
                    policy_id=policy_id,
                    scheduled_for=scheduled_for,
                    status=ScheduledReminder.Status.PENDING,
                )
        except IntegrityError as exc:
            raise InvariantViolation(
                f"live reminder already exists for assessment={assessment_id} "
                f"student={student_id} policy={policy_id}"
            ) from exc

    def claim(self, pk, *, now):
        """pending -> sent. True only for the caller that won the row."""
        return self.filter(
            pk=pk,
            status=ScheduledReminder.Status.PENDING,
        ).update(
            status=ScheduledReminder.Status.SENT,
            sent_at=now,
            updated_at=now,
        ) == 1

    def cancel(self, pk, *, reason, now):
        """pending -> cancelled."""
        return self.filter(
            pk=pk,
            status=ScheduledReminder.Status.PENDING,
        ).update(
            status=ScheduledReminder.Status.CANCELLED,
            cancelled_at=now,
            cancel_reason=reason,
            updated_at=now,
        ) == 1

    def record_dispatch_failure(self, pk, *, error, max_attempts, now):
        """
        Count a failed dispatch on a pending reminder. Returns True
        when the failure exhausted the attempts and the reminder went
        terminal.
        """
        self.filter(
            pk=pk,
            status=ScheduledReminder.Status.PENDING,
        ).update(
            dispatch_attempts=F("dispatch_attempts") + 1,
            last_error=error,
            updated_at=now,
        )
        return self.filter(
            pk=pk,
            status=ScheduledReminder.Status.PENDING,
            dispatch_attempts__gte=max_attempts,
        ).update(
            status=ScheduledReminder.Status.FAILED,
            updated_at=now,
        ) == 1

    def release_stale_claims(self, *, claimed_before, now):
        """
        sent -> pending for claims that never produced a Notification
        (the claiming process died mid-dispatch).
        """
        stale = self.filter(
            status=ScheduledReminder.Status.SENT,
            sent_at__lt=claimed_before,
            notification__isnull=True,
        ).exclude(
            audit_entries__action=AuditEntry.Action.SENT,
        )
        released = 0
        for pk in list(stale.values_list("pk", flat=True)):
            try:
                with transaction.atomic():
                    released += self.filter(
                        pk=pk,
                        status=ScheduledReminder.Status.SENT,
                    ).update(
                        status=ScheduledReminder.Status.PENDING,
                        sent_at=None,
                        updated_at=now,
                    )
            except IntegrityError:
                # a fresh live reminder took the triple meanwhile
                continue
        return released


class ScheduledReminder(models.Model):

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        SENT = "sent", "Sent"
        CANCELLED = "cancelled", "Cancelled"
        FAILED = "failed", "Failed"

    assessment = models.ForeignKey(
        "courses.Assessment",
        on_delete=models.CASCADE,
        related_name="scheduled_reminders",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="scheduled_reminders",
    )
    policy = models.ForeignKey(
        ReminderPolicy,
        on_delete=models.PROTECT,
        related_name="reminders",
    )

    scheduled_for = models.DateTimeField(db_index=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )

    sent_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=50, blank=True)

    dispatch_attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ScheduledReminderQuerySet.as_manager()

    class Meta:
        db_table = "scheduled_reminders"
        ordering = ["scheduled_for", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["assessment", "student", "policy"],
                condition=Q(status="pending"),
                name="unique_live_reminder_per_triple",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "scheduled_for"], name="sched_rem_status_due_idx"),
            models.Index(fields=["student", "status"], name="sched_rem_student_status_idx"),
        ]

    def __str__(self):
        return (
            f"Reminder for {self.student_id} | assessment {self.assessment_id} | "
            f"{self.status} @ {self.scheduled_for:%Y-%m-%d %H:%M}"
        )

    @property
    def is_live(self):
        return self.status == self.Status.PENDING


# ============================================================
# AUDIT LOG
# ============================================================

class AuditEntry(models.Model):
    """
    Append-only record of a scheduling, cancellation or delivery
    decision. IDs are also kept in ``details`` so an entry stays
    readable after the rows it points to are gone.
    """

    class Action(models.TextChoices):
        SCHEDULED = "scheduled", "Scheduled"
        CANCELLED = "cancelled", "Cancelled"
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"

    # Unconstrained references: deleting the referenced rows must not
    # rewrite the log.
    reminder = models.ForeignKey(
        ScheduledReminder,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    assessment = models.ForeignKey(
        "courses.Assessment",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="reminder_audit_entries",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="reminder_audit_entries",
    )

    action = models.CharField(max_length=20, choices=Action.choices, db_index=True)
    details = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "reminder_audit_log"
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "audit entries"
        indexes = [
            models.Index(fields=["student", "created_at"], name="audit_student_created_idx"),
            models.Index(fields=["assessment", "action"], name="audit_assessment_action_idx"),
        ]

    def __str__(self):
        return f"{self.action.upper()} | reminder {self.reminder_id} | {self.created_at:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvariantViolation("Audit entries are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvariantViolation("Audit entries are append-only.")
