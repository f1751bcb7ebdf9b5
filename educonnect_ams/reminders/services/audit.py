import logging

from reminders.models import AuditEntry

logger = logging.getLogger(__name__)


def record(
    action,
    *,
    reminder=None,
    reminder_id=None,
    assessment_id=None,
    student_id=None,
    **details,
):
    """
    Append one entry to the reminder audit log.

    IDs are mirrored into ``details`` so the entry stays readable once
    the referenced rows are deleted. The references are not database
    constraints, so an entry may name a reminder or assessment that is
    being deleted in the same transaction.
    """
    if reminder is not None:
        reminder_id = reminder.pk
        assessment_id = assessment_id or reminder.assessment_id
        student_id = student_id or reminder.student_id

    details.setdefault("reminder_id", reminder_id)
    details.setdefault("assessment_id", assessment_id)

    entry = AuditEntry.objects.create(
        action=action,
        reminder_id=reminder_id,
        assessment_id=assessment_id,
        student_id=student_id,
        details=details,
    )

    logger.debug(
        "audit %s reminder=%s assessment=%s student=%s",
        action, reminder_id, assessment_id, student_id,
    )
    return entry
