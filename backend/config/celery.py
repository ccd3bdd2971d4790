"""
Celery configuration for the BOM engine project.
"""

import os

from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('bom_engine')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Tasks live outside Django apps, so name the module explicitly.
app.autodiscover_tasks(['application.tasks'], related_name='bom_tasks')

# Configure task schedules (periodic tasks)
app.conf.beat_schedule = {
    'nightly-structure-integrity-sweep': {
        'task': 'application.tasks.bom_tasks.validate_structure_integrity',
        'schedule': crontab(hour=2, minute=30),
    },
}
