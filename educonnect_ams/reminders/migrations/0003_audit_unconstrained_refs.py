import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("courses", "0001_initial"),
        ("reminders", "0002_default_policies"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.AlterField(
            model_name="auditentry",
            name="reminder",
            field=models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="audit_entries", to="reminders.scheduledreminder"),
        ),
        migrations.AlterField(
            model_name="auditentry",
            name="assessment",
            field=models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="reminder_audit_entries", to="courses.assessment"),
        ),
        migrations.AlterField(
            model_name="auditentry",
            name="student",
            field=models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="reminder_audit_entries", to=settings.AUTH_USER_MODEL),
        ),
    ]
