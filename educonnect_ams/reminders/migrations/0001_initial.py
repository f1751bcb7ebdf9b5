import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("courses", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ReminderPolicy",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("days_before", models.PositiveIntegerField(default=0)),
                ("hours_before", models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MaxValueValidator(23)])),
                ("is_default", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "reminder_policies",
                "ordering": ["-days_before", "-hours_before"],
                "verbose_name_plural": "reminder policies",
            },
        ),
        migrations.AddConstraint(
            model_name="reminderpolicy",
            constraint=models.UniqueConstraint(fields=("days_before", "hours_before"), name="reminder_policy_offset_unique"),
        ),
        migrations.CreateModel(
            name="ScheduledReminder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scheduled_for", models.DateTimeField(db_index=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("sent", "Sent"), ("cancelled", "Cancelled"), ("failed", "Failed")], db_index=True, default="pending", max_length=20)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.CharField(blank=True, max_length=50)),
                ("dispatch_attempts", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("assessment", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="scheduled_reminders", to="courses.assessment")),
                ("policy", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="reminders", to="reminders.reminderpolicy")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="scheduled_reminders", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "scheduled_reminders",
                "ordering": ["scheduled_for", "id"],
            },
        ),
        migrations.AddIndex(
            model_name="scheduledreminder",
            index=models.Index(fields=["status", "scheduled_for"], name="sched_rem_status_due_idx"),
        ),
        migrations.AddIndex(
            model_name="scheduledreminder",
            index=models.Index(fields=["student", "status"], name="sched_rem_student_status_idx"),
        ),
        migrations.AddConstraint(
            model_name="scheduledreminder",
            constraint=models.UniqueConstraint(condition=models.Q(("status", "pending")), fields=("assessment", "student", "policy"), name="unique_live_reminder_per_triple"),
        ),
        migrations.CreateModel(
            name="AuditEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(choices=[("scheduled", "Scheduled"), ("cancelled", "Cancelled"), ("sent", "Sent"), ("failed", "Failed")], db_index=True, max_length=20)),
                ("details", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("assessment", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reminder_audit_entries", to="courses.assessment")),
                ("reminder", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="audit_entries", to="reminders.scheduledreminder")),
                ("student", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reminder_audit_entries", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "reminder_audit_log",
                "ordering": ["-created_at", "-id"],
                "verbose_name_plural": "audit entries",
            },
        ),
        migrations.AddIndex(
            model_name="auditentry",
            index=models.Index(fields=["student", "created_at"], name="audit_student_created_idx"),
        ),
        migrations.AddIndex(
            model_name="auditentry",
            index=models.Index(fields=["assessment", "action"], name="audit_assessment_action_idx"),
        ),
    ]
