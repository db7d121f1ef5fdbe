# contactscout/settings/test.py

import tempfile
from pathlib import Path

from .base import *  # noqa: F401, F403

SECRET_KEY = "test-secret-key"

# File-backed so sync_to_async threads share the same database
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": Path(tempfile.gettempdir()) / "contactscout.sqlite3",
        # Concurrent claim tests wait on the write lock
        "OPTIONS": {"timeout": 20},
        "TEST": {
            "NAME": str(Path(tempfile.gettempdir()) / "contactscout-test.sqlite3"),
        },
    }
}

# No Redis in tests: rate limiters stay process-local
REDIS_URL = ""
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"
CELERY_TASK_ALWAYS_EAGER = True

CRAWL_DEFAULT_MIN_DELAY = 0.0
CRAWL_DEFAULT_MAX_DELAY = 0.0

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.StreamHandler"},
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}
