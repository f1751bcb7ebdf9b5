"""
courses/signals.py

Translates course data changes into reminder engine domain events.
The engine never watches these models directly; everything it
needs arrives through ``reminders.events``.
"""

from django.db.models.signals import post_delete, post_save, pre_delete, pre_save
from django.dispatch import receiver

from reminders import events

from .models import Assessment, Enrollment, Submission


# ============================================================
# PRE_SAVE: TRACK WHAT CHANGED ON THE ASSESSMENT
# ============================================================

@receiver(pre_save, sender=Assessment)
def track_assessment_changes(sender, instance, **kwargs):
    """
    Snapshot the stored due date and visibility flags so post_save
    can tell which event (if any) the save amounts to.
    """
    instance._previous_state = None

    if not instance.pk:
        return

    previous = (
        Assessment.objects
        .filter(pk=instance.pk)
        .values("due_date", "is_active", "is_published")
        .first()
    )
    instance._previous_state = previous


# ============================================================
# POST_SAVE: ASSESSMENT PUBLISHED / RESCHEDULED / DEACTIVATED
# ============================================================

@receiver(post_save, sender=Assessment)
def emit_assessment_events(sender, instance, created, **kwargs):
    if created:
        if instance.is_visible:
            events.assessment_published.send(sender=Assessment, assessment=instance)
        return

    previous = getattr(instance, "_previous_state", None)
    if previous is None:
        return

    was_visible = previous["is_active"] and previous["is_published"]

    if was_visible and not instance.is_visible:
        events.assessment_deactivated.send(sender=Assessment, assessment=instance)

    elif not was_visible and instance.is_visible:
        events.assessment_published.send(sender=Assessment, assessment=instance)

    elif previous["due_date"] != instance.due_date:
        events.assessment_rescheduled.send(
            sender=Assessment,
            assessment=instance,
            new_due_date=instance.due_date,
        )


@receiver(pre_delete, sender=Assessment)
def emit_assessment_withdrawn(sender, instance, **kwargs):
    events.assessment_withdrawn.send(sender=Assessment, assessment=instance)


# ============================================================
# ENROLLMENT
# ============================================================

@receiver(post_save, sender=Enrollment)
def emit_student_enrolled(sender, instance, created, **kwargs):
    if not created:
        return

    events.student_enrolled.send(
        sender=Enrollment,
        course=instance.course,
        student=instance.student,
    )


@receiver(post_delete, sender=Enrollment)
def emit_student_unenrolled(sender, instance, **kwargs):
    events.student_unenrolled.send(
        sender=Enrollment,
        course=instance.course,
        student=instance.student,
    )


# ============================================================
# SUBMISSION
# ============================================================

@receiver(post_save, sender=Submission)
def emit_submission_received(sender, instance, created, **kwargs):
    if not created:
        return

    events.submission_received.send(
        sender=Submission,
        assessment=instance.assessment,
        student=instance.student,
        submission=instance,
    )
