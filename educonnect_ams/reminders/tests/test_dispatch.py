from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings

from courses import services as course_services
from notifications.models import DeliveryJob, Notification
from reminders.models import AuditEntry, ScheduledReminder
from reminders.services import dispatch, scheduling

from .factories import enroll, make_assessment, make_course, make_user, now, use_policies


class ProcessDueTests(TestCase):

    def setUp(self):
        self.week, self.day = use_policies((7, 0), (1, 0))
        self.course = make_course()
        self.students = [make_user(f"student{i}") for i in range(3)]
        enroll(self.course, *self.students)
        self.due = now() + timedelta(days=10)
        self.assessment = make_assessment(self.course, due_date=self.due)

    def tick(self, at, **kwargs):
        return dispatch.process_due(at, **kwargs)

    def test_week_tick_sends_only_week_reminders(self):
        self.assertEqual(ScheduledReminder.objects.live().count(), 6)

        result = self.tick(self.due - timedelta(days=7))

        self.assertEqual(result.sent, 3)
        self.assertEqual(Notification.objects.count(), 3)
        self.assertEqual(
            ScheduledReminder.objects.filter(status=ScheduledReminder.Status.SENT, policy=self.week).count(),
            3,
        )
        self.assertEqual(ScheduledReminder.objects.live().filter(policy=self.day).count(), 3)

    def test_notification_content_and_links(self):
        self.tick(self.due - timedelta(days=7))

        notification = Notification.objects.get(user=self.students[0])
        reminder = ScheduledReminder.objects.get(pk=notification.reminder_id)

        self.assertEqual(notification.kind, Notification.Kind.REMINDER)
        self.assertEqual(notification.channel, Notification.Channel.BOTH)
        self.assertEqual(notification.title, "Assessment Due in 7 Day(s)")
        self.assertTrue(notification.message.startswith('Reminder: "Essay 1" for Introduction to Computing'))
        self.assertEqual(notification.reference_type, "assessment")
        self.assertEqual(notification.reference_id, self.assessment.pk)
        self.assertEqual(notification.expires_at, self.due)
        self.assertEqual(notification.payload["days_before"], 7)
        self.assertIsNotNone(reminder.sent_at)
        self.assertTrue(DeliveryJob.objects.filter(notification=notification).exists())
        self.assertTrue(
            AuditEntry.objects.filter(reminder=reminder, action=AuditEntry.Action.SENT).exists()
        )

    def test_hour_policy_reads_as_urgent(self):
        six_hours = use_policies((0, 6))[0]
        scheduling.reconcile_assessment(self.assessment)

        self.tick(self.due - timedelta(hours=6))

        urgent = Notification.objects.filter(reminder__policy=six_hours).first()
        self.assertEqual(urgent.title, "Assessment Due in 6 Hour(s)")
        self.assertTrue(urgent.message.startswith("URGENT: "))

    def test_second_tick_sends_nothing(self):
        at = self.due - timedelta(days=7)
        self.tick(at)

        result = self.tick(at)

        self.assertEqual(result.sent, 0)
        self.assertEqual(Notification.objects.count(), 3)

    def test_dispatching_same_reminder_twice_yields_one_notification(self):
        at = self.due - timedelta(days=7)
        reminder = ScheduledReminder.objects.live().filter(policy=self.week).first()

        self.assertEqual(dispatch.dispatch_reminder(reminder, now=at), dispatch.SENT)
        self.assertEqual(dispatch.dispatch_reminder(reminder, now=at), dispatch.SKIPPED)
        self.assertEqual(Notification.objects.filter(reminder=reminder).count(), 1)

    def test_batch_size_leaves_rest_pending(self):
        result = self.tick(self.due - timedelta(days=7), batch_size=2)

        self.assertEqual(result.sent, 2)
        self.assertEqual(ScheduledReminder.objects.live().filter(policy=self.week).count(), 1)

    def test_exhausted_budget_leaves_everything_pending(self):
        result = self.tick(self.due - timedelta(days=7), budget_seconds=0)

        self.assertEqual(result.sent, 0)
        self.assertEqual(ScheduledReminder.objects.live().count(), 6)

    # --------------------------------------------------
    # DISPATCH-TIME RE-CHECK
    # --------------------------------------------------
    def test_submission_before_tick_wins(self):
        student = self.students[0]
        course_services.record_submission(assessment=self.assessment, student=student)

        self.tick(self.due - timedelta(days=7))

        self.assertFalse(Notification.objects.filter(user=student).exists())
        self.assertEqual(Notification.objects.count(), 2)

    def test_cancel_racing_a_claim_wins(self):
        reminder = ScheduledReminder.objects.live().filter(policy=self.week).first()
        at = self.due - timedelta(days=7)

        # The reminder was loaded as pending, then cancelled before the claim
        scheduling.cancel_reminder(reminder, reason=scheduling.SUBMISSION_RECEIVED, now=at)
        with mock.patch.object(dispatch, "dispatch_block_reason", return_value=None):
            outcome = dispatch.dispatch_reminder(reminder, now=at)

        self.assertEqual(outcome, dispatch.SKIPPED)
        self.assertFalse(Notification.objects.exists())
        reminder.refresh_from_db()
        self.assertEqual(reminder.status, ScheduledReminder.Status.CANCELLED)

    def test_unenrolled_student_cancelled_at_dispatch(self):
        reminder = ScheduledReminder.objects.live().filter(policy=self.week).first()
        # Enrollment removed behind the engine's back
        self.course.enrollments.filter(student_id=reminder.student_id).update(course=make_course("CS999"))

        outcome = dispatch.dispatch_reminder(reminder, now=self.due - timedelta(days=7))

        self.assertEqual(outcome, dispatch.CANCELLED)
        reminder.refresh_from_db()
        self.assertEqual(reminder.cancel_reason, scheduling.STUDENT_UNENROLLED)

    def test_passed_deadline_cancelled_at_dispatch(self):
        reminder = ScheduledReminder.objects.live().filter(policy=self.day).first()

        outcome = dispatch.dispatch_reminder(reminder, now=self.due + timedelta(minutes=1))

        self.assertEqual(outcome, dispatch.CANCELLED)
        reminder.refresh_from_db()
        self.assertEqual(reminder.cancel_reason, scheduling.DEADLINE_PASSED)

    # --------------------------------------------------
    # CHANNELS
    # --------------------------------------------------
    def test_student_without_email_gets_dashboard_only(self):
        student = self.students[0]
        student.email = ""
        student.save()

        self.tick(self.due - timedelta(days=7))

        notification = Notification.objects.get(user=student)
        self.assertEqual(notification.channel, Notification.Channel.DASHBOARD)
        self.assertFalse(DeliveryJob.objects.filter(notification=notification).exists())

    # --------------------------------------------------
    # STORE FAILURES
    # --------------------------------------------------
    def test_store_failure_leaves_reminder_pending(self):
        reminder = ScheduledReminder.objects.live().filter(policy=self.week).first()

        with mock.patch.object(dispatch, "create_reminder_notification", side_effect=DatabaseError("disk full")):
            outcome = dispatch.dispatch_reminder(reminder, now=self.due - timedelta(days=7))

        self.assertEqual(outcome, dispatch.FAILED)
        reminder.refresh_from_db()
        self.assertEqual(reminder.status, ScheduledReminder.Status.PENDING)
        self.assertEqual(reminder.dispatch_attempts, 1)
        self.assertIn("disk full", reminder.last_error)
        self.assertIsNone(reminder.sent_at)
        self.assertFalse(Notification.objects.exists())
        self.assertTrue(
            AuditEntry.objects.filter(reminder=reminder, action=AuditEntry.Action.FAILED).exists()
        )

    def test_store_failure_during_owed_check_is_counted(self):
        at = self.due - timedelta(days=7)

        with mock.patch.object(dispatch, "dispatch_block_reason", side_effect=DatabaseError("locked")):
            result = self.tick(at)

        self.assertEqual((result.sent, result.failed), (0, 3))
        reminders = ScheduledReminder.objects.filter(policy=self.week)
        self.assertEqual(
            set(reminders.values_list("status", "dispatch_attempts")),
            {(ScheduledReminder.Status.PENDING, 1)},
        )
        self.assertFalse(Notification.objects.exists())

    def test_store_failure_while_cancelling_is_counted(self):
        reminder = ScheduledReminder.objects.live().filter(policy=self.week).first()

        # past the deadline, so the reminder is cancelled rather than sent
        with mock.patch.object(dispatch, "cancel_reminder", side_effect=DatabaseError("locked")):
            outcome = dispatch.dispatch_reminder(reminder, now=self.due + timedelta(minutes=1))

        self.assertEqual(outcome, dispatch.FAILED)
        reminder.refresh_from_db()
        self.assertEqual(reminder.status, ScheduledReminder.Status.PENDING)
        self.assertEqual(reminder.dispatch_attempts, 1)

    @override_settings(REMINDER_MAX_DISPATCH_ATTEMPTS=2)
    def test_repeated_store_failures_go_terminal(self):
        reminder = ScheduledReminder.objects.live().filter(policy=self.week).first()
        at = self.due - timedelta(days=7)

        with mock.patch.object(dispatch, "create_reminder_notification", side_effect=DatabaseError("disk full")):
            dispatch.dispatch_reminder(reminder, now=at)
            dispatch.dispatch_reminder(reminder, now=at)

        reminder.refresh_from_db()
        self.assertEqual(reminder.status, ScheduledReminder.Status.FAILED)
        self.assertEqual(reminder.dispatch_attempts, 2)

    # --------------------------------------------------
    # STALE CLAIMS
    # --------------------------------------------------
    def test_stale_claim_without_notification_is_released(self):
        reminder = ScheduledReminder.objects.live().filter(policy=self.week).first()
        at = self.due - timedelta(days=7)
        ScheduledReminder.objects.claim(reminder.pk, now=at)

        result = self.tick(at + timedelta(hours=1))

        self.assertEqual(result.released, 1)
        self.assertEqual(Notification.objects.filter(reminder=reminder).count(), 1)

    def test_recent_claim_is_not_released(self):
        reminder = ScheduledReminder.objects.live().filter(policy=self.week).first()
        at = self.due - timedelta(days=7)
        ScheduledReminder.objects.claim(reminder.pk, now=at)

        result = self.tick(at + timedelta(minutes=1))

        self.assertEqual(result.released, 0)
        self.assertFalse(Notification.objects.filter(reminder=reminder).exists())
