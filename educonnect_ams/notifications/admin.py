from django.contrib import admin
from django.utils import timezone
from django.utils.html import format_html

from .models import DeliveryJob, Notification, NotificationPreference


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):

    # =====================================================
    # LIST VIEW
    # =====================================================
    list_display = (
        "id",
        "user",
        "kind",
        "channel",
        "colored_title",
        "status",
        "email_sent",
        "created_at",
    )

    list_filter = (
        "kind",
        "channel",
        "status",
        "email_sent",
        "created_at",
    )

    search_fields = (
        "title",
        "message",
        "user__username",
        "user__first_name",
        "user__last_name",
    )

    ordering = ("-created_at",)
    list_per_page = 25

    # =====================================================
    # FIELDSETS (DETAIL VIEW)
    # =====================================================
    fieldsets = (
        ("Recipient", {
            "fields": ("user", "channel"),
        }),
        ("Classification", {
            "fields": ("kind", "reference_type", "reference_id", "reminder"),
        }),
        ("Content", {
            "fields": ("title", "message", "payload"),
        }),
        ("Status", {
            "fields": (
                "status",
                "read_at",
                "dismissed_at",
                "email_sent",
                "email_sent_at",
                "created_at",
                "expires_at",
            ),
        }),
    )

    readonly_fields = (
        "reminder",
        "created_at",
        "read_at",
        "dismissed_at",
        "email_sent_at",
    )

    actions = (
        "mark_as_read",
        "mark_as_unread",
    )

    def colored_title(self, obj):
        color_map = {
            Notification.Kind.REMINDER: "#f59e0b",      # orange
            Notification.Kind.GRADE: "#16a34a",         # green
            Notification.Kind.ANNOUNCEMENT: "#2563eb",  # blue
            Notification.Kind.SYSTEM: "#6b7280",        # gray
        }

        return format_html(
            '<span style="color:{}; font-weight:600;">{}</span>',
            color_map.get(obj.kind, "#000000"),
            obj.title,
        )

    colored_title.short_description = "Title"

    @admin.action(description="Mark selected notifications as READ")
    def mark_as_read(self, request, queryset):
        queryset.update(status=Notification.Status.READ, read_at=timezone.now())

    @admin.action(description="Mark selected notifications as UNREAD")
    def mark_as_unread(self, request, queryset):
        queryset.update(status=Notification.Status.UNREAD, read_at=None)


@admin.register(NotificationPreference)
class NotificationPreferenceAdmin(admin.ModelAdmin):
    list_display = ("user", "channel", "email_enabled", "updated_at")
    list_filter = ("channel", "email_enabled")
    search_fields = ("user__username", "user__email")


@admin.register(DeliveryJob)
class DeliveryJobAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "recipient",
        "subject",
        "status",
        "attempts",
        "max_attempts",
        "scheduled_for",
        "sent_at",
    )
    list_filter = ("status",)
    search_fields = ("recipient", "subject")
    ordering = ("-created_at",)
    readonly_fields = (
        "notification",
        "claimed_at",
        "last_attempt_at",
        "sent_at",
        "last_error",
        "created_at",
    )

    actions = ("retry_now",)

    @admin.action(description="Retry selected failed jobs now")
    def retry_now(self, request, queryset):
        updated = queryset.filter(status=DeliveryJob.Status.FAILED).update(
            status=DeliveryJob.Status.PENDING,
            attempts=0,
            scheduled_for=timezone.now(),
        )
        self.message_user(request, f"{updated} job(s) queued for retry.")
