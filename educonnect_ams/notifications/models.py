from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class Notification(models.Model):
    """
    A user-facing notification.

    Reminder notifications are produced by the dispatcher, exactly one
    per dispatched reminder (enforced by the one-to-one link). The row
    outlives the reminder it came from.
    """

    # =====================================================
    # KIND / CHANNEL / STATUS
    # =====================================================
    class Kind(models.TextChoices):
        REMINDER = "reminder", "Reminder"
        GRADE = "grade", "Grade"
        ANNOUNCEMENT = "announcement", "Announcement"
        SYSTEM = "system", "System"

    class Channel(models.TextChoices):
        DASHBOARD = "dashboard", "Dashboard"
        EMAIL = "email", "Email"
        BOTH = "both", "Dashboard + Email"

    class Status(models.TextChoices):
        UNREAD = "unread", "Unread"
        READ = "read", "Read"
        DISMISSED = "dismissed", "Dismissed"

    # =====================================================
    # CORE RELATIONSHIPS
    # =====================================================
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User who receives this notification",
    )

    reminder = models.OneToOneField(
        "reminders.ScheduledReminder",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notification",
    )

    # =====================================================
    # CLASSIFICATION
    # =====================================================
    kind = models.CharField(
        max_length=20,
        choices=Kind.choices,
        default=Kind.SYSTEM,
        db_index=True,
    )

    channel = models.CharField(
        max_length=20,
        choices=Channel.choices,
        default=Channel.DASHBOARD,
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.UNREAD,
        db_index=True,
    )

    # =====================================================
    # CONTENT
    # =====================================================
    title = models.CharField(
        max_length=200,
        help_text="Short headline shown in notification list",
    )

    message = models.TextField(
        help_text="Detailed message shown when expanded",
    )

    # What the notification is about, e.g. ("assessment", 42)
    reference_type = models.CharField(max_length=50, blank=True)
    reference_id = models.PositiveBigIntegerField(null=True, blank=True)

    payload = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    # =====================================================
    # STATE
    # =====================================================
    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)

    read_at = models.DateTimeField(null=True, blank=True)
    dismissed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "status"], name="notif_user_status_idx"),
            models.Index(fields=["user", "kind", "status"], name="notif_user_kind_status_idx"),
        ]

    def __str__(self):
        return f"{self.user} | {self.kind.upper()} | {self.title}"

    # =====================================================
    # HELPERS
    # =====================================================
    @property
    def includes_email(self):
        return self.channel in (self.Channel.EMAIL, self.Channel.BOTH)

    @property
    def is_unread(self):
        return self.status == self.Status.UNREAD

    def mark_as_read(self):
        if self.status == self.Status.UNREAD:
            self.status = self.Status.READ
            self.read_at = timezone.now()
            self.save(update_fields=["status", "read_at"])

    def dismiss(self):
        if self.status != self.Status.DISMISSED:
            self.status = self.Status.DISMISSED
            self.dismissed_at = timezone.now()
            self.save(update_fields=["status", "dismissed_at"])

    @classmethod
    def mark_all_as_read(cls, user, kind=None):
        """
        Mark all unread notifications (optionally of one kind) as read.
        Returns the number of rows updated.
        """
        qs = cls.objects.filter(user=user, status=cls.Status.UNREAD)
        if kind:
            qs = qs.filter(kind=kind)

        return qs.update(status=cls.Status.READ, read_at=timezone.now())

    @classmethod
    def unread_count(cls, user):
        return cls.objects.filter(user=user, status=cls.Status.UNREAD).count()


class NotificationPreference(models.Model):
    """
    Per-user delivery choice for reminder notifications. Users without
    a row get the defaults (both channels, email enabled).
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notification_preference",
    )

    channel = models.CharField(
        max_length=20,
        choices=Notification.Channel.choices,
        default=Notification.Channel.BOTH,
    )
    email_enabled = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "notification_preferences"

    def __str__(self):
        return f"{self.user} | {self.channel} | email={'on' if self.email_enabled else 'off'}"


# ============================================================
# DELIVERY QUEUE
# ============================================================

class DeliveryJobQuerySet(models.QuerySet):

    def ready(self, now):
        return self.filter(
            status=DeliveryJob.Status.PENDING,
            scheduled_for__lte=now,
            attempts__lt=F("max_attempts"),
        )

    def claim(self, pk, *, now):
        """pending -> processing. True only for the caller that won the row."""
        return self.filter(
            pk=pk,
            status=DeliveryJob.Status.PENDING,
        ).update(
            status=DeliveryJob.Status.PROCESSING,
            claimed_at=now,
        ) == 1

    def release_stale(self, *, claimed_before):
        """processing -> pending for claims whose worker went away."""
        return self.filter(
            status=DeliveryJob.Status.PROCESSING,
        ).filter(
            Q(claimed_at__lt=claimed_before) | Q(claimed_at__isnull=True)
        ).update(
            status=DeliveryJob.Status.PENDING,
            claimed_at=None,
        )


class DeliveryJob(models.Model):
    """
    One outbound email, drained independently of the dispatcher.
    A failure here never touches the dashboard notification.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PROCESSING = "processing", "Processing"
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"

    notification = models.ForeignKey(
        Notification,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="delivery_jobs",
    )

    recipient = models.EmailField()
    recipient_name = models.CharField(max_length=255, blank=True)

    subject = models.CharField(max_length=255)
    body_text = models.TextField()
    body_html = models.TextField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )

    attempts = models.PositiveIntegerField(default=0)
    max_attempts = models.PositiveIntegerField(default=3)

    scheduled_for = models.DateTimeField(default=timezone.now)
    claimed_at = models.DateTimeField(null=True, blank=True)
    last_attempt_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    objects = DeliveryJobQuerySet.as_manager()

    class Meta:
        db_table = "delivery_queue"
        ordering = ["scheduled_for", "id"]
        indexes = [
            models.Index(fields=["status", "scheduled_for"], name="delivery_status_due_idx"),
        ]

    def __str__(self):
        return f"{self.recipient} | {self.status} | attempt {self.attempts}/{self.max_attempts}"
