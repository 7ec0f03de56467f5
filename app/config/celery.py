"""
Celery configuration for the Django application.

Celery runs the ledger's background jobs:
- Scheduled integrity audits (ledger.tasks.audit_ledger_integrity)

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all registered Django apps, and periodic
schedules live in the database (django-celery-beat).

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
