"""
notifications/services/content.py

Reminder wording. Day-level policies read as a normal reminder;
hour-level policies (days_before == 0) are flagged URGENT.
"""

from dataclasses import dataclass, field

from django.utils import timezone
from django.utils.html import format_html

from reminders import conf


@dataclass(frozen=True)
class ReminderContent:
    title: str
    message: str
    payload: dict = field(default_factory=dict)


@dataclass(frozen=True)
class EmailContent:
    subject: str
    body_text: str
    body_html: str


def format_due_date(due_date):
    return timezone.localtime(due_date).strftime("%b %d, %Y at %I:%M %p")


def time_text(policy, *, title=False):
    """Mixed offsets render both parts, e.g. 1 day(s) 6 hour(s)."""
    day, hour = ("Day(s)", "Hour(s)") if title else ("day(s)", "hour(s)")
    parts = []
    if policy.days_before:
        parts.append(f"{policy.days_before} {day}")
    if policy.hours_before:
        parts.append(f"{policy.hours_before} {hour}")
    return " ".join(parts)


def is_urgent(policy):
    return policy.days_before == 0


def submit_url(assessment):
    return f"{conf.get('APP_URL').rstrip('/')}/dashboard?assessment={assessment.pk}"


# ============================================================
# DASHBOARD NOTIFICATION
# ============================================================

def build_reminder_content(reminder):
    assessment = reminder.assessment
    course = assessment.course
    policy = reminder.policy
    due = format_due_date(assessment.due_date)

    title = f"Assessment Due in {time_text(policy, title=True)}"
    lead = "URGENT" if is_urgent(policy) else "Reminder"
    message = (
        f'{lead}: "{assessment.title}" for {course.title} '
        f"is due in {time_text(policy)} on {due}"
    )

    payload = {
        "course_title": course.title,
        "assessment_title": assessment.title,
        "due_date": assessment.due_date,
        "days_before": policy.days_before,
        "hours_before": policy.hours_before,
    }
    return ReminderContent(title=title, message=message, payload=payload)


# ============================================================
# EMAIL
# ============================================================

_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #4F46E5; color: white; padding: 20px; text-align: center;">
      <h1>EduConnect AMS</h1>
    </div>
    <div style="padding: 20px; background: #f9fafb;">
      <p>Hi {name},</p>
      <div style="background: {highlight}; padding: 15px; border-radius: 6px; margin: 15px 0;">
        <strong>Deadline Reminder</strong><br>
        Your assessment <strong>"{assessment}"</strong> for <strong>{course}</strong>
        is due in <strong>{remaining}</strong>.
      </div>
      <p><strong>Due Date:</strong> {due}</p>
      <p>Don't miss the deadline! Submit your work now:</p>
      <a href="{url}" style="display: inline-block; background: #4F46E5; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">Submit Assessment</a>
      <p>If you've already submitted, you can ignore this reminder.</p>
    </div>
    <div style="text-align: center; padding: 20px; color: #6B7280; font-size: 12px;">
      <p>This is an automated reminder from EduConnect Assessment &amp; Marking System.</p>
      <p>You can manage your notification preferences in your dashboard settings.</p>
    </div>
  </div>
</body>
</html>
"""


def build_reminder_email(reminder):
    assessment = reminder.assessment
    course = assessment.course
    policy = reminder.policy
    student = reminder.student

    name = student.get_full_name() or "Student"
    remaining = time_text(policy)
    due = format_due_date(assessment.due_date)
    url = submit_url(assessment)

    urgency = "URGENT: " if is_urgent(policy) else ""
    subject = f"{urgency}Assessment Due in {remaining}: {assessment.title}"

    body_text = (
        f"Hi {name},\n\n"
        f'Your assessment "{assessment.title}" for {course.title} '
        f"is due in {remaining}.\n\n"
        f"Due Date: {due}\n\n"
        f"Submit your work here: {url}\n\n"
        "If you've already submitted, you can ignore this reminder.\n\n"
        "EduConnect Assessment & Marking System"
    )

    body_html = format_html(
        _HTML_TEMPLATE,
        name=name,
        highlight="#FEE2E2" if policy.days_before <= 1 else "#FEF3C7",
        assessment=assessment.title,
        course=course.title,
        remaining=remaining,
        due=due,
        url=url,
    )

    return EmailContent(subject=subject, body_text=body_text, body_html=str(body_html))
