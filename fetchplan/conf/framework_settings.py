"""
Base settings for projects and test suites using fetchplan.
Projects import * from this file in their settings.py and extend it.
"""

import copy
import os
from pathlib import Path

from fetchplan.defaults import LIBRARY_DEFAULTS

BASE_DIR = Path(os.getcwd())

SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY", "django-insecure-fetchplan-default-key-change-me"
)

DEBUG = os.environ.get("DJANGO_DEBUG", "False").lower() == "true"

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    # Third-party apps
    "django_filters",
    # Framework apps
    "fetchplan",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DJANGO_DB_NAME", ":memory:"),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

FETCHPLAN = copy.deepcopy(LIBRARY_DEFAULTS)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "fetchplan": {
            "handlers": ["console"],
            "level": os.environ.get("FETCHPLAN_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
