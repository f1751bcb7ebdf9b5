"""
Read-side queries for dashboards: what is coming up for a student,
and what the engine has decided for them so far.
"""

from django.utils import timezone

from reminders.models import AuditEntry, ScheduledReminder


def upcoming_reminders(student, now=None):
    """Live reminders whose assessment is still ahead, soonest first."""
    now = now or timezone.now()
    return (
        ScheduledReminder.objects
        .live()
        .for_student(student)
        .filter(assessment__due_date__gt=now)
        .select_related("assessment__course", "policy")
        .order_by("scheduled_for", "id")
    )


def reminder_history(student, limit=50):
    return list(
        AuditEntry.objects
        .filter(student=student)
        .order_by("-created_at", "-id")[:limit]
    )


def serialize_reminder(reminder):
    assessment = reminder.assessment
    return {
        "id": reminder.pk,
        "assessment_id": assessment.pk,
        "assessment_title": assessment.title,
        "course_title": assessment.course.title,
        "due_date": assessment.due_date,
        "policy": reminder.policy.name,
        "scheduled_for": reminder.scheduled_for,
        "status": reminder.status,
    }


def serialize_audit_entry(entry):
    return {
        "id": entry.pk,
        "action": entry.action,
        "reminder_id": entry.details.get("reminder_id", entry.reminder_id),
        "assessment_id": entry.details.get("assessment_id", entry.assessment_id),
        "details": entry.details,
        "created_at": entry.created_at,
    }
