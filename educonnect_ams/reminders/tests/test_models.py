from datetime import timedelta

from django.core.exceptions import ValidationError
from django.test import TestCase

from reminders.exceptions import InvariantViolation
from reminders.models import AuditEntry, ReminderPolicy, ScheduledReminder
from reminders.services import audit
from reminders.services.policies import active_policies, get_or_create_policy

from .factories import enroll, make_assessment, make_course, make_user, now, use_policies


class ReminderPolicyTests(TestCase):

    def test_default_policies_are_seeded(self):
        defaults = ReminderPolicy.objects.filter(is_default=True)

        self.assertEqual(
            sorted((p.days_before, p.hours_before) for p in defaults),
            [(0, 6), (1, 0), (3, 0), (7, 0)],
        )

    def test_offset_and_label(self):
        week = get_or_create_policy(days_before=7)
        six = get_or_create_policy(hours_before=6)

        self.assertEqual(week.offset, timedelta(days=7))
        self.assertEqual(week.offset_label, "7 day(s)")
        self.assertEqual(six.offset_label, "6 hour(s)")

    def test_mixed_offset_label_keeps_hours(self):
        mixed = get_or_create_policy(days_before=1, hours_before=6)

        self.assertEqual(mixed.offset, timedelta(days=1, hours=6))
        self.assertEqual(mixed.offset_label, "1 day(s) 6 hour(s)")
        self.assertEqual(mixed.name, "1 Day(s) 6 Hour(s) Before")

    def test_clean_rejects_bad_offsets(self):
        with self.assertRaises(ValidationError):
            ReminderPolicy(name="Too many hours", days_before=0, hours_before=24).clean()
        with self.assertRaises(ValidationError):
            ReminderPolicy(name="Zero", days_before=0, hours_before=0).clean()

    def test_offset_frozen_once_referenced(self):
        week = use_policies((7, 0))[0]
        course = make_course()
        enroll(course, make_user("student"))
        make_assessment(course)

        week.days_before = 5
        with self.assertRaises(ValidationError):
            week.save()

        week.refresh_from_db()
        week.name = "Seven Days Out"
        week.save()
        self.assertEqual(ReminderPolicy.objects.get(pk=week.pk).name, "Seven Days Out")

    def test_unreferenced_offset_can_change(self):
        policy = get_or_create_policy(days_before=2)
        policy.days_before = 4
        policy.save()

        self.assertEqual(ReminderPolicy.objects.get(pk=policy.pk).days_before, 4)

    def test_active_policies(self):
        use_policies((3, 0))

        self.assertEqual([(p.days_before, p.hours_before) for p in active_policies()], [(3, 0)])


class ScheduledReminderStoreTests(TestCase):

    def setUp(self):
        use_policies((7, 0))
        self.course = make_course()
        self.student = make_user("student")
        enroll(self.course, self.student)
        self.assessment = make_assessment(self.course)
        self.reminder = ScheduledReminder.objects.live().get()

    def test_claim_only_once(self):
        at = now()

        self.assertTrue(ScheduledReminder.objects.claim(self.reminder.pk, now=at))
        self.assertFalse(ScheduledReminder.objects.claim(self.reminder.pk, now=at))

    def test_cancelled_reminder_cannot_be_claimed(self):
        at = now()
        ScheduledReminder.objects.cancel(self.reminder.pk, reason="submission_received", now=at)

        self.assertFalse(ScheduledReminder.objects.claim(self.reminder.pk, now=at))

    def test_new_live_reminder_allowed_after_cancel(self):
        at = now()
        ScheduledReminder.objects.cancel(self.reminder.pk, reason="rescheduled", now=at)

        again = ScheduledReminder.objects.insert_pending(
            assessment_id=self.assessment.pk,
            student_id=self.student.pk,
            policy_id=self.reminder.policy_id,
            scheduled_for=self.reminder.scheduled_for,
        )

        self.assertTrue(again.is_live)
        self.assertEqual(ScheduledReminder.objects.filter(assessment=self.assessment).count(), 2)

    def test_due_selects_only_pending_past_reminders(self):
        self.assertFalse(ScheduledReminder.objects.due(now()).exists())
        self.assertTrue(ScheduledReminder.objects.due(self.reminder.scheduled_for).exists())


class AuditEntryTests(TestCase):

    def test_entries_are_append_only(self):
        entry = audit.record(AuditEntry.Action.SCHEDULED, reason="test")

        entry.details = {"tampered": True}
        with self.assertRaises(InvariantViolation):
            entry.save()
        with self.assertRaises(InvariantViolation):
            entry.delete()

        self.assertEqual(AuditEntry.objects.get(pk=entry.pk).details["reason"], "test")

    def test_ids_are_mirrored_into_details(self):
        use_policies((7, 0))
        course = make_course()
        student = make_user("student")
        enroll(course, student)
        make_assessment(course)
        reminder = ScheduledReminder.objects.get()

        entry = audit.record(AuditEntry.Action.SENT, reminder=reminder, channel="dashboard")

        self.assertEqual(entry.student_id, student.pk)
        self.assertEqual(entry.details["reminder_id"], reminder.pk)
        self.assertEqual(entry.details["assessment_id"], reminder.assessment_id)
