"""
Reconciliation planning without the database.
"""

from datetime import timedelta
from types import SimpleNamespace

from django.test import SimpleTestCase
from django.utils import timezone

from reminders.services.scheduling import (
    ASSESSMENT_UNPUBLISHED,
    PAST_DUE,
    RESCHEDULED,
    STUDENT_UNENROLLED,
    SUBMISSION_RECEIVED,
    CohortMember,
    is_owed,
    plan_reconciliation,
)

NOW = timezone.now().replace(microsecond=0)


def policy(pk, days=0, hours=0, active=True):
    return SimpleNamespace(
        id=pk,
        days_before=days,
        hours_before=hours,
        is_active=active,
        offset=timedelta(days=days, hours=hours),
    )


def assessment(due_in, *, active=True, published=True):
    return SimpleNamespace(pk=1, due_date=NOW + due_in, is_active=active, is_published=published)


def live(pk, student_id, policy, scheduled_for):
    return SimpleNamespace(
        id=pk,
        pk=pk,
        student_id=student_id,
        policy=policy,
        policy_id=policy.id,
        scheduled_for=scheduled_for,
    )


def member(student_id, enrolled=True, submitted=False):
    return CohortMember(student_id=student_id, enrolled=enrolled, submitted=submitted)


WEEK = policy(1, days=7)
DAY = policy(2, days=1)
SIX_HOURS = policy(3, hours=6)


class OwedPredicateTests(SimpleTestCase):

    def test_future_candidate_is_owed(self):
        self.assertTrue(is_owed(assessment(timedelta(days=10)), member(1), WEEK, NOW))

    def test_candidate_at_now_is_not_owed(self):
        self.assertFalse(is_owed(assessment(timedelta(days=7)), member(1), WEEK, NOW))

    def test_grace_window_admits_recent_past(self):
        a = assessment(timedelta(days=7) - timedelta(minutes=5))
        self.assertFalse(is_owed(a, member(1), WEEK, NOW))
        self.assertTrue(is_owed(a, member(1), WEEK, NOW, grace=timedelta(minutes=10)))

    def test_submitted_or_unenrolled_student_is_not_owed(self):
        a = assessment(timedelta(days=10))
        self.assertFalse(is_owed(a, member(1, submitted=True), WEEK, NOW))
        self.assertFalse(is_owed(a, member(1, enrolled=False), WEEK, NOW))

    def test_hidden_assessment_is_not_owed(self):
        self.assertFalse(is_owed(assessment(timedelta(days=10), active=False), member(1), WEEK, NOW))
        self.assertFalse(is_owed(assessment(timedelta(days=10), published=False), member(1), WEEK, NOW))


class PlanReconciliationTests(SimpleTestCase):

    def plan(self, a, cohort, policies, live_reminders=()):
        return plan_reconciliation(
            assessment=a,
            cohort=cohort,
            policies=policies,
            live_reminders=list(live_reminders),
            now=NOW,
        )

    def test_fresh_cohort_gets_every_future_policy(self):
        a = assessment(timedelta(days=10))
        plan = self.plan(a, [member(1), member(2), member(3)], [WEEK, DAY])

        self.assertEqual(len(plan.to_create), 6)
        self.assertEqual(plan.to_cancel, [])
        self.assertEqual(
            {p.scheduled_for for p in plan.to_create},
            {a.due_date - timedelta(days=7), a.due_date - timedelta(days=1)},
        )

    def test_past_candidates_are_skipped(self):
        plan = self.plan(assessment(timedelta(hours=28)), [member(1)], [WEEK, DAY])

        self.assertEqual([p.policy_id for p in plan.to_create], [DAY.id])

    def test_only_hour_policy_left_close_to_deadline(self):
        plan = self.plan(assessment(timedelta(hours=20)), [member(1)], [WEEK, DAY, SIX_HOURS])

        self.assertEqual([p.policy_id for p in plan.to_create], [SIX_HOURS.id])

    def test_matching_live_reminder_is_kept(self):
        a = assessment(timedelta(days=10))
        existing = live(10, 1, WEEK, a.due_date - WEEK.offset)

        plan = self.plan(a, [member(1)], [WEEK], [existing])

        self.assertTrue(plan.is_empty)

    def test_due_but_undispatched_reminder_is_kept(self):
        a = assessment(timedelta(days=7) - timedelta(minutes=1))
        existing = live(10, 1, WEEK, a.due_date - WEEK.offset)

        plan = self.plan(a, [member(1)], [WEEK], [existing])

        self.assertTrue(plan.is_empty)

    def test_moved_due_date_replaces_live_reminder(self):
        a = assessment(timedelta(days=15))
        existing = live(10, 1, WEEK, NOW + timedelta(days=3))

        plan = self.plan(a, [member(1)], [WEEK], [existing])

        self.assertEqual([c.reason for c in plan.to_cancel], [RESCHEDULED])
        self.assertEqual(plan.to_create[0].scheduled_for, NOW + timedelta(days=8))

    def test_due_date_pulled_in_past_offset_cancels_as_past_due(self):
        a = assessment(timedelta(days=2))
        existing = live(10, 1, WEEK, NOW + timedelta(days=3))

        plan = self.plan(a, [member(1)], [WEEK], [existing])

        self.assertEqual([c.reason for c in plan.to_cancel], [PAST_DUE])
        self.assertEqual(plan.to_create, [])

    def test_ineligible_students_lose_live_reminders(self):
        a = assessment(timedelta(days=10))
        due = a.due_date - WEEK.offset
        cohort = [member(1, submitted=True), member(2, enrolled=False)]
        existing = [live(10, 1, WEEK, due), live(11, 2, WEEK, due)]

        plan = self.plan(a, cohort, [WEEK], existing)

        self.assertEqual(
            {(c.student_id, c.reason) for c in plan.to_cancel},
            {(1, SUBMISSION_RECEIVED), (2, STUDENT_UNENROLLED)},
        )
        self.assertEqual(plan.to_create, [])

    def test_inactive_policy_reminder_left_alone(self):
        a = assessment(timedelta(days=10))
        existing = live(10, 1, DAY, a.due_date - DAY.offset)

        plan = self.plan(a, [member(1)], [WEEK], [existing])

        self.assertEqual(plan.to_cancel, [])
        self.assertEqual(len(plan.to_create), 1)

    def test_inactive_policy_reminder_cancelled_when_due_date_moves(self):
        a = assessment(timedelta(days=15))
        existing = live(10, 1, DAY, NOW + timedelta(days=9))

        plan = self.plan(a, [member(1)], [WEEK], [existing])

        self.assertEqual(
            [(c.reminder_id, c.reason) for c in plan.to_cancel],
            [(10, RESCHEDULED)],
        )
        self.assertNotIn(DAY.id, [p.policy_id for p in plan.to_create])

    def test_inactive_policy_reminder_cancelled_when_assessment_hidden(self):
        a = assessment(timedelta(days=10), published=False)
        existing = live(10, 1, DAY, a.due_date - DAY.offset)

        plan = self.plan(a, [member(1)], [WEEK], [existing])

        self.assertEqual([c.reason for c in plan.to_cancel], [ASSESSMENT_UNPUBLISHED])

    def test_same_inputs_give_same_plan(self):
        a = assessment(timedelta(days=10))
        cohort = [member(1), member(2)]

        self.assertEqual(self.plan(a, cohort, [WEEK, DAY]), self.plan(a, cohort, [WEEK, DAY]))
