"""
reminders/signals/handlers.py

Domain event receivers. Each one reconciles (or cancels) exactly the
scope its event affects. They run inside the sender's transaction, so
a failure here rolls back the change that fired the event.
"""

import logging

from django.dispatch import receiver

from reminders import events
from reminders.services import scheduling

logger = logging.getLogger(__name__)


# ============================================================
# ASSESSMENT LIFECYCLE
# ============================================================

@receiver(events.assessment_published)
def on_assessment_published(sender, assessment, **kwargs):
    logger.debug("assessment_published %s", assessment.pk)
    scheduling.reconcile_assessment(assessment)


@receiver(events.assessment_rescheduled)
def on_assessment_rescheduled(sender, assessment, new_due_date=None, **kwargs):
    logger.debug("assessment_rescheduled %s -> %s", assessment.pk, new_due_date)
    scheduling.reconcile_assessment(assessment)


@receiver(events.assessment_deactivated)
def on_assessment_deactivated(sender, assessment, **kwargs):
    logger.debug("assessment_deactivated %s", assessment.pk)
    scheduling.reconcile_assessment(assessment)


@receiver(events.assessment_withdrawn)
def on_assessment_withdrawn(sender, assessment, **kwargs):
    logger.debug("assessment_withdrawn %s", assessment.pk)
    scheduling.cancel_for_withdrawal(assessment)


# ============================================================
# ENROLLMENT
# ============================================================

@receiver(events.student_enrolled)
def on_student_enrolled(sender, course, student, **kwargs):
    scheduling.reconcile_student(course, student)


@receiver(events.student_unenrolled)
def on_student_unenrolled(sender, course, student, **kwargs):
    scheduling.cancel_for_unenrollment(course, student)


# ============================================================
# SUBMISSION
# ============================================================

@receiver(events.submission_received)
def on_submission_received(sender, assessment, student, submission=None, **kwargs):
    scheduling.cancel_for_submission(assessment, student, submission=submission)
