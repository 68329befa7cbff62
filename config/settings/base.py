"""
Django settings for the promotions engine - Base Configuration
Shared by every environment; override per environment in dev.py / test.py.
"""

import os
from pathlib import Path
from typing import Any

# ===============================================================================
# CORE DJANGO SETTINGS
# ===============================================================================

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Application definition
DJANGO_APPS: list[str] = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
]

LOCAL_APPS: list[str] = [
    'apps.promotions',  # 🏷️ Promotion rules, discount calculation & redemption
]

INSTALLED_APPS: list[str] = DJANGO_APPS + LOCAL_APPS

MIDDLEWARE: list[str] = []

# ===============================================================================
# DATABASE CONFIGURATION
# ===============================================================================

DATABASES: dict[str, dict[str, Any]] = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'promotions'),
        'USER': os.environ.get('DB_USER', 'promotions'),
        'PASSWORD': os.environ.get('DB_PASSWORD', 'development_password'),
        'HOST': os.environ.get('DB_HOST', 'localhost'),
        'PORT': os.environ.get('DB_PORT', '5432'),
        'CONN_MAX_AGE': 60,  # Database connection pooling
        'OPTIONS': {
            'application_name': 'promotions_engine',
        },
    }
}

# ===============================================================================
# INTERNATIONALIZATION & LOCALIZATION
# ===============================================================================

LANGUAGE_CODE = 'ro'
TIME_ZONE = 'Europe/Bucharest'
USE_I18N = True
USE_TZ = True

LANGUAGES = [
    ('ro', 'Română'),
    ('en', 'English'),
]

# ===============================================================================
# CURRENCY CONFIGURATION
# ===============================================================================

# Amounts are integer minor units (bani/cents) in one of these currencies
DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'RON')
SUPPORTED_CURRENCIES = ['RON', 'EUR', 'USD']

# ===============================================================================
# DEFAULT AUTO FIELD
# ===============================================================================

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ===============================================================================
# SECURITY SETTINGS (Base - override per environment)
# ===============================================================================

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY')
if not SECRET_KEY:
    # Development fallback - never use this in production
    import warnings
    warnings.warn(
        "Using default SECRET_KEY. Set DJANGO_SECRET_KEY environment variable for production!",
        UserWarning,
        stacklevel=2
    )
    SECRET_KEY = 'django-insecure-dev-key-only-change-in-production-or-tests'  # noqa: S105

# ===============================================================================
# LOGGING CONFIGURATION
# ===============================================================================

LOGGING: dict[str, Any] = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname:<8} {name:<40} {message} [promotion={promotion_id} order={order_id}]',
            'style': '{',
        },
    },
    'filters': {
        'add_log_context': {
            '()': 'apps.common.logging.LogContextFilter',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
            'filters': ['add_log_context'],
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': os.environ.get('APPS_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
