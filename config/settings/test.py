"""
Test settings for the promotions engine
Fast, isolated testing environment.
"""

from .base import *  # noqa: F403

# ===============================================================================
# TEST FLAGS
# ===============================================================================

DEBUG = False

SECRET_KEY = "django-insecure-test-key-only"  # noqa: S105

# ===============================================================================
# TEST DATABASE (In-memory for speed)
# ===============================================================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
        "OPTIONS": {
            "timeout": 20,
        },
    }
}

# ===============================================================================
# PASSWORD HASHER (Fast for tests)
# ===============================================================================

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",  # Fast but insecure (test only)
]

# ===============================================================================
# LOGGING (Minimal for tests)
# ===============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "add_log_context": {
            "()": "apps.common.logging.LogContextFilter",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "filters": ["add_log_context"],
        },
        "null": {
            "class": "logging.NullHandler",
        },
    },
    "loggers": {
        "apps.promotions.services": {
            "handlers": ["null"],
            "level": "INFO",
            "propagate": True,
        },
    },
    "root": {
        "handlers": ["null"],
        "level": "CRITICAL",
    },
}
