"""
Domain events consumed by the reminder engine.

Fired by course / assessment / enrollment / submission management
(see ``courses.signals``). Receivers live in ``reminders.signals``
and run synchronously: an exception raised while reconciling
propagates to whoever sent the event.

Keyword arguments sent with each event:

- assessment_published    assessment
- assessment_rescheduled  assessment, new_due_date
- assessment_deactivated  assessment
- assessment_withdrawn    assessment
- student_enrolled        course, student
- student_unenrolled      course, student
- submission_received     assessment, student, submission
"""

from django.dispatch import Signal

assessment_published = Signal()
assessment_rescheduled = Signal()
assessment_deactivated = Signal()
assessment_withdrawn = Signal()

student_enrolled = Signal()
student_unenrolled = Signal()

submission_received = Signal()
