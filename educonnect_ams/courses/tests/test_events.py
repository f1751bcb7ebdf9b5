from datetime import timedelta

from django.test import TestCase

from courses import services
from courses.models import Assessment
from reminders import events
from reminders.tests.factories import make_course, make_user, now, use_policies


class EventCapture:
    """Collects the events fired during a test."""

    SIGNALS = (
        "assessment_published",
        "assessment_rescheduled",
        "assessment_deactivated",
        "assessment_withdrawn",
        "student_enrolled",
        "student_unenrolled",
        "submission_received",
    )

    def __init__(self, testcase):
        self.fired = []
        for name in self.SIGNALS:
            signal = getattr(events, name)
            receiver = self._receiver_for(name)
            signal.connect(receiver, weak=False, dispatch_uid=f"capture-{name}")
            testcase.addCleanup(signal.disconnect, dispatch_uid=f"capture-{name}")

    def _receiver_for(self, name):
        def receiver(sender, **kwargs):
            self.fired.append((name, kwargs))
        return receiver

    def names(self):
        return [name for name, _ in self.fired]


class CourseEventTests(TestCase):

    def setUp(self):
        use_policies((7, 0))
        self.course = make_course()
        self.student = make_user("student")
        self.events = EventCapture(self)

    def make(self, **kwargs):
        return services.create_assessment(
            course=self.course,
            title="Lab Report",
            due_date=now() + timedelta(days=10),
            **kwargs,
        )

    def test_creating_visible_assessment_publishes(self):
        self.make()
        self.assertEqual(self.events.names(), ["assessment_published"])

    def test_creating_draft_is_silent(self):
        self.make(is_published=False)
        self.assertEqual(self.events.names(), [])

    def test_reschedule_event_carries_new_due_date(self):
        assessment = self.make()
        new_due = assessment.due_date + timedelta(days=2)

        services.reschedule_assessment(assessment=assessment, due_date=new_due)

        name, kwargs = self.events.fired[-1]
        self.assertEqual(name, "assessment_rescheduled")
        self.assertEqual(kwargs["new_due_date"], new_due)

    def test_same_due_date_is_not_a_reschedule(self):
        assessment = self.make()

        services.reschedule_assessment(assessment=assessment, due_date=assessment.due_date)

        self.assertEqual(self.events.names(), ["assessment_published"])

    def test_visibility_changes(self):
        assessment = self.make()

        services.set_assessment_visibility(assessment=assessment, is_active=False)
        services.set_assessment_visibility(assessment=assessment, is_active=True)

        self.assertEqual(
            self.events.names(),
            ["assessment_published", "assessment_deactivated", "assessment_published"],
        )

    def test_withdraw(self):
        assessment = self.make()

        services.withdraw_assessment(assessment=assessment)

        self.assertEqual(self.events.names()[-1], "assessment_withdrawn")
        self.assertFalse(Assessment.objects.filter(pk=assessment.pk).exists())

    def test_enrollment_events_fire_once(self):
        services.enroll_student(course=self.course, student=self.student)
        services.enroll_student(course=self.course, student=self.student)
        services.unenroll_student(course=self.course, student=self.student)

        self.assertEqual(self.events.names(), ["student_enrolled", "student_unenrolled"])

    def test_submission_event_carries_submission(self):
        assessment = self.make()
        services.enroll_student(course=self.course, student=self.student)

        submission = services.record_submission(assessment=assessment, student=self.student)
        services.record_submission(assessment=assessment, student=self.student)

        name, kwargs = self.events.fired[-1]
        self.assertEqual(name, "submission_received")
        self.assertEqual(kwargs["submission"], submission)
        self.assertEqual(self.events.names().count("submission_received"), 1)
