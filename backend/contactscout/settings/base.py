# contactscout/settings/base.py

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = os.environ.get("SECRET_KEY", "insecure-base-key")

DEBUG = False

ALLOWED_HOSTS: list[str] = []

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "apps.common",
    "apps.campaigns",
    "apps.queue",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "contactscout.urls"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

REST_FRAMEWORK = {
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 50,
}

# Redis/Celery
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", REDIS_URL)
CELERY_RESULT_BACKEND = CELERY_BROKER_URL
CELERY_BEAT_SCHEDULE = {
    "reset-stuck-domains": {
        "task": "apps.queue.tasks.reset_stuck_domains_task",
        "schedule": 300.0,
    },
}

# Worker loop
WORKER_BATCH_SIZE = int(os.environ.get("WORKER_BATCH_SIZE", 4))
WORKER_POLL_INTERVAL = float(os.environ.get("WORKER_POLL_INTERVAL", 3))
STUCK_DOMAIN_THRESHOLD_MINUTES = int(os.environ.get("STUCK_DOMAIN_THRESHOLD_MINUTES", 15))
WATCHDOG_INTERVAL = float(os.environ.get("WATCHDOG_INTERVAL", 60))

# Crawling
CRAWL_USER_AGENT = os.environ.get(
    "CRAWL_USER_AGENT",
    "Mozilla/5.0 (compatible; ContactScout/1.0; +https://github.com/contactscout/contactscout)",
)
CRAWL_ROBOTS_AGENT = "ContactScout"
CRAWL_DEFAULT_MIN_DELAY = float(os.environ.get("CRAWL_DEFAULT_MIN_DELAY", 2.0))
CRAWL_DEFAULT_MAX_DELAY = float(os.environ.get("CRAWL_DEFAULT_MAX_DELAY", 4.0))

# Browser automation
BROWSER_MAX_PROCESSES = int(os.environ.get("BROWSER_MAX_PROCESSES", 5))
BROWSER_CONTEXTS_PER_PROCESS = int(os.environ.get("BROWSER_CONTEXTS_PER_PROCESS", 2))
BROWSER_HEADLESS = os.environ.get("BROWSER_HEADLESS", "true").lower() in ("1", "true", "yes")
BROWSER_VIEWPORT = {"width": 1366, "height": 768}
BROWSER_LOCALE = os.environ.get("BROWSER_LOCALE", "en-US")
BROWSER_TIMEZONE = os.environ.get("BROWSER_TIMEZONE", "UTC")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
