"""
Celery configuration.

Workers run two kinds of payment jobs:
- Webhook processing: Stripe events are stored by the webhook view and
  dispatched here, with retries on failure
- Reconciliation: a periodic beat task resumes milestone releases left
  PENDING by a crashed or timed-out request

Redis is both the message broker and the result backend. Tasks are
auto-discovered from all installed Django apps; the beat schedule lives in
the database (django-celery-beat).

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
