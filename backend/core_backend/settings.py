"""
Django settings for the POS terminal order-sync process.

The process hosts the order synchronization engine for one terminal and
serves a websocket to the terminal's view layer. Everything is environment
driven so the same settings module works for local development, packaged
terminals and the test suite.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "pos-terminal-insecure-dev-key")

DEBUG = os.environ.get("DJANGO_DEBUG", "True").lower() in ("true", "1", "yes")

ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "channels",
    "rest_framework",
    "core_backend",
    "pricing",
    "cart",
    "orders",
]

MIDDLEWARE = [
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "core_backend.urls"

ASGI_APPLICATION = "core_backend.asgi.application"

# The terminal keeps no relational data of its own; the database only exists
# so framework apps that expect one can initialise.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DJANGO_DB_PATH", str(BASE_DIR / "terminal.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "UTC")

# ============================================================================
# CACHES
# ============================================================================
# "drafts" is the durable per-terminal key-value surface used for order drafts
# and display-currency preferences. File based so drafts survive restarts.

DRAFT_CACHE_DIR = os.environ.get("POS_DRAFT_CACHE_DIR", str(BASE_DIR / ".drafts"))

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "pos-terminal-default",
    },
    "drafts": {
        "BACKEND": "django.core.cache.backends.filebased.FileBasedCache",
        "LOCATION": DRAFT_CACHE_DIR,
        "TIMEOUT": None,
    },
}

CACHE_VERSION = int(os.environ.get("CACHE_VERSION", "1"))

# ============================================================================
# CHANNELS
# ============================================================================

REDIS_URL = os.environ.get("REDIS_URL")

if REDIS_URL:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {"hosts": [REDIS_URL]},
        }
    }
else:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels.layers.InMemoryChannelLayer",
        }
    }

# ============================================================================
# REST FRAMEWORK
# ============================================================================

REST_FRAMEWORK = {
    "COERCE_DECIMAL_TO_STRING": True,
    "UNAUTHENTICATED_USER": None,
}

# ============================================================================
# ORDER SYNC
# ============================================================================

POS_SYNC = {
    # Orders created / updated within this window are highlighted on load.
    "HIGHLIGHT_WINDOW_SECONDS": int(os.environ.get("POS_HIGHLIGHT_WINDOW_SECONDS", "30")),
    # Updates younger than this are treated as part of the creation burst.
    "MODIFIED_GRACE_SECONDS": int(os.environ.get("POS_MODIFIED_GRACE_SECONDS", "5")),
    # Submissions without an acknowledgment after this are reported as stalled.
    "SUBMISSION_TIMEOUT_SECONDS": int(os.environ.get("POS_SUBMISSION_TIMEOUT_SECONDS", "30")),
    "QUICK_TABLE_NUMBER": "QUICK",
    "DELIVERY_TABLE_NUMBER": "DELIVERY",
    "CUSTOMER_PHONE_PATTERN": os.environ.get("POS_CUSTOMER_PHONE_PATTERN", r"^09\d{8}$"),
    "CUSTOMER_NAME_MIN_LENGTH": 3,
    "DRAFT_CACHE_ALIAS": "drafts",
    "BASE_CURRENCY": os.environ.get("POS_BASE_CURRENCY", "USD"),
}

# ============================================================================
# LOGGING
# ============================================================================

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
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
