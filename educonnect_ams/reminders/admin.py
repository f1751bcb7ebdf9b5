from django.contrib import admin

from .models import AuditEntry, ReminderPolicy, ScheduledReminder


# ---------------------------------------------------------------------
# POLICY ADMIN
# ---------------------------------------------------------------------
@admin.register(ReminderPolicy)
class ReminderPolicyAdmin(admin.ModelAdmin):
    list_display = ("name", "days_before", "hours_before", "is_default", "is_active")
    list_filter = ("is_active", "is_default")
    list_editable = ("is_active",)
    ordering = ("-days_before", "-hours_before")

    def get_readonly_fields(self, request, obj=None):
        # Offset is frozen once reminders reference the policy
        if obj is not None and obj.reminders.exists():
            return ("days_before", "hours_before")
        return ()


# ---------------------------------------------------------------------
# SCHEDULED REMINDER ADMIN
# ---------------------------------------------------------------------
@admin.register(ScheduledReminder)
class ScheduledReminderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "student",
        "assessment",
        "policy",
        "scheduled_for",
        "status",
        "cancel_reason",
        "dispatch_attempts",
    )
    list_filter = ("status", "policy", "cancel_reason")
    search_fields = ("student__username", "assessment__title")
    ordering = ("scheduled_for",)
    list_select_related = ("student", "assessment", "policy")

    # Status changes go through the engine only
    readonly_fields = (
        "assessment",
        "student",
        "policy",
        "scheduled_for",
        "status",
        "sent_at",
        "cancelled_at",
        "cancel_reason",
        "dispatch_attempts",
        "last_error",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False


# ---------------------------------------------------------------------
# AUDIT LOG ADMIN (READ-ONLY)
# ---------------------------------------------------------------------
@admin.register(AuditEntry)
class AuditEntryAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "reminder_id", "assessment_id", "student_id")
    list_filter = ("action",)
    search_fields = ("student__username", "assessment__title")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
