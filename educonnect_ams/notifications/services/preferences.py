from notifications.models import Notification, NotificationPreference


def get_preference(user):
    """The stored preference, or None when the user kept the defaults."""
    return NotificationPreference.objects.filter(user=user).first()


def update_preference(user, *, channel=None, email_enabled=None):
    preference, _ = NotificationPreference.objects.get_or_create(user=user)

    if channel is not None:
        if channel not in Notification.Channel.values:
            raise ValueError(f"Unknown channel: {channel}")
        preference.channel = channel
    if email_enabled is not None:
        preference.email_enabled = email_enabled

    preference.save()
    return preference


def resolve_channel(user):
    """
    Channel for a reminder notification to ``user``.

    Defaults to both. The email leg is dropped when the user has no
    address or has switched email off; an email-only preference then
    falls back to the dashboard so the reminder is not lost.
    """
    preference = get_preference(user)

    channel = preference.channel if preference else Notification.Channel.BOTH
    email_ok = bool(user.email) and (preference is None or preference.email_enabled)

    if not email_ok and channel in (Notification.Channel.EMAIL, Notification.Channel.BOTH):
        return Notification.Channel.DASHBOARD
    return channel
