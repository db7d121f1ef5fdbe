# contactscout/celery.py

import os
from celery import Celery

# Set default Django settings module
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "contactscout.settings.local")

app = Celery("contactscout")

# Load config from Django settings, namespace='CELERY'
# This means all celery-related settings must have CELERY_ prefix
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks in all installed apps
# Looks for tasks.py in each app directory
app.autodiscover_tasks()
