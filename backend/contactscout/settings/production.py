# contactscout/settings/production.py

import os
from .base import *  # noqa: F401, F403
from .base import LOGGING

DEBUG = False

SECRET_KEY = os.environ["SECRET_KEY"]
ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "").split(",")

# Every worker process claims domains through this database
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("DATABASE_NAME", "contactscout"),
        "USER": os.environ.get("DATABASE_USER", "contactscout"),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
        "HOST": os.environ.get("DATABASE_HOST", "localhost"),
        "PORT": os.environ.get("DATABASE_PORT", "5432"),
        "CONN_MAX_AGE": 60,
        "OPTIONS": {"connect_timeout": 10},
    }
}

# Workers run headless with a larger batch in production
WORKER_BATCH_SIZE = int(os.environ.get("WORKER_BATCH_SIZE", 8))
BROWSER_HEADLESS = True

# The API sits behind the reverse proxy
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

REST_FRAMEWORK = {
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.AnonRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "anon": "1000/hour",
    },
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 50,
}

# Campaign worker and crawler chatter at INFO, Django itself at WARNING
LOGGING["loggers"]["django"] = {
    "handlers": ["console"],
    "level": os.environ.get("DJANGO_LOG_LEVEL", "WARNING"),
    "propagate": False,
}
