"""
Add celery-beat schedule for the ledger integrity audit.

This migration creates the periodic task schedule for the
audit_ledger_integrity task, which runs every hour to check that each
account's paid amount matches its installment history.
"""

from django.db import migrations

TASK_NAME = "Audit Ledger Integrity"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for the integrity audit."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="hours",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "ledger.tasks.audit_ledger_integrity",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Compares every account's paid amount with the sum of its "
                "installments and logs divergent accounts."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("ledger", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
