"""
Add celery-beat schedule for reconciling stuck milestone releases.

Creates the periodic task for reconcile_pending_releases, which runs
every 15 minutes and finishes PENDING payments whose Stripe transfer
outcome was never recorded locally.
"""

from django.db import migrations

TASK_NAME = "Reconcile Pending Milestone Releases"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for pending release reconciliation."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=15,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "payments.tasks.reconcile_pending_releases",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Replays the Stripe transfer of PENDING milestone payments "
                "with their stored idempotency key and finalizes them."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
