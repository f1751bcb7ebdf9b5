from django.db import migrations

DEFAULT_POLICIES = [
    ("One Week Before", 7, 0),
    ("Three Days Before", 3, 0),
    ("One Day Before", 1, 0),
    ("Six Hours Before", 0, 6),
]


def seed_default_policies(apps, schema_editor):
    ReminderPolicy = apps.get_model("reminders", "ReminderPolicy")
    for name, days_before, hours_before in DEFAULT_POLICIES:
        ReminderPolicy.objects.get_or_create(
            days_before=days_before,
            hours_before=hours_before,
            defaults={"name": name, "is_default": True, "is_active": True},
        )


def remove_default_policies(apps, schema_editor):
    ReminderPolicy = apps.get_model("reminders", "ReminderPolicy")
    ReminderPolicy.objects.filter(is_default=True, reminders__isnull=True).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("reminders", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_default_policies, remove_default_policies),
    ]
