from reminders.models import ReminderPolicy


def active_policies():
    return list(ReminderPolicy.objects.filter(is_active=True))


def set_policy_active(policy, active):
    """
    Toggle a policy. Existing reminders are left alone; the change is
    picked up by the next reconciliation.
    """
    if policy.is_active == active:
        return policy

    policy.is_active = active
    policy.save(update_fields=["is_active", "updated_at"])
    return policy


def get_or_create_policy(*, days_before=0, hours_before=0, name=None, is_active=True):
    policy, _ = ReminderPolicy.objects.get_or_create(
        days_before=days_before,
        hours_before=hours_before,
        defaults={
            "name": name or _default_name(days_before, hours_before),
            "is_active": is_active,
        },
    )
    return policy


def _default_name(days_before, hours_before):
    parts = []
    if days_before:
        parts.append(f"{days_before} Day(s)")
    if hours_before:
        parts.append(f"{hours_before} Hour(s)")
    return " ".join(parts) + " Before"
