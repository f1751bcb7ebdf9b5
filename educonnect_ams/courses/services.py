"""
Course management operations that drive the reminder engine.

Every function runs in one transaction: the data change and the
reminder reconciliation it triggers (through ``courses.signals``)
either both commit or both roll back.
"""

import logging

from django.db import transaction

from .models import Assessment, Enrollment, Submission

logger = logging.getLogger(__name__)


@transaction.atomic
def create_assessment(
    *,
    course,
    title,
    due_date,
    description="",
    assessment_type=Assessment.Type.ASSIGNMENT,
    is_published=True,
    is_active=True,
):
    """
    Creates an assessment. When it is created active and published,
    reminders are scheduled for every enrolled student.
    """
    assessment = Assessment.objects.create(
        course=course,
        title=title,
        description=description,
        assessment_type=assessment_type,
        due_date=due_date,
        is_published=is_published,
        is_active=is_active,
    )
    logger.info("Created assessment %s for course %s", assessment.pk, course.pk)
    return assessment


@transaction.atomic
def reschedule_assessment(*, assessment, due_date):
    if assessment.due_date == due_date:
        return assessment

    old_due_date = assessment.due_date
    assessment.due_date = due_date
    assessment.save()

    logger.info(
        "Rescheduled assessment %s from %s to %s",
        assessment.pk, old_due_date, due_date,
    )
    return assessment


@transaction.atomic
def set_assessment_visibility(*, assessment, is_active=None, is_published=None):
    """
    Publish / unpublish / archive / restore an assessment.
    Passing None leaves a flag unchanged.
    """
    if is_active is not None:
        assessment.is_active = is_active
    if is_published is not None:
        assessment.is_published = is_published

    assessment.save()
    return assessment


@transaction.atomic
def withdraw_assessment(*, assessment):
    """
    Deletes the assessment. Pending reminders are cancelled and
    audited before the rows cascade away.
    """
    assessment_id = assessment.pk
    assessment.delete()
    logger.info("Withdrew assessment %s", assessment_id)


@transaction.atomic
def enroll_student(*, course, student):
    enrollment, created = Enrollment.objects.get_or_create(
        course=course,
        student=student,
    )
    if created:
        logger.info("Enrolled student %s in course %s", student.pk, course.pk)
    return enrollment


@transaction.atomic
def unenroll_student(*, course, student):
    deleted, _ = Enrollment.objects.filter(course=course, student=student).delete()
    if deleted:
        logger.info("Unenrolled student %s from course %s", student.pk, course.pk)
    return bool(deleted)


@transaction.atomic
def record_submission(*, assessment, student, submitted_at=None):
    defaults = {}
    if submitted_at is not None:
        defaults["submitted_at"] = submitted_at

    submission, created = Submission.objects.get_or_create(
        assessment=assessment,
        student=student,
        defaults=defaults,
    )
    if created:
        logger.info(
            "Recorded submission %s (assessment=%s student=%s)",
            submission.pk, assessment.pk, student.pk,
        )
    return submission
