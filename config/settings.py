"""
Django settings for the rental engine.

The engine is a pure computation layer: no database, no URL routing.
Settings only carry the timezone contract, logging, and the engine knobs
under RENTAL_ENGINE.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'rental-engine-insecure-dev-key')
DEBUG = os.getenv('DJANGO_DEBUG', 'false').lower() == 'true'
ALLOWED_HOSTS = [h for h in os.getenv('DJANGO_ALLOWED_HOSTS', '').split(',') if h]

INSTALLED_APPS = [
    'apps.core',
    'apps.stores',
    'apps.catalog',
    'apps.availability',
    'apps.pricing',
    'apps.booking',
]

# Snapshots are handed in by the caller; nothing is persisted here.
DATABASES = {}

# All instants are timezone-aware; store-local rules are evaluated in the
# store's own timezone, never the server's.
USE_TZ = True
TIME_ZONE = 'UTC'
USE_I18N = True
LANGUAGE_CODE = 'en'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# Rental engine
# =============================================================================

RENTAL_ENGINE = {
    # Fallback when a store has no (or an invalid) IANA timezone
    'DEFAULT_STORE_TIMEZONE': os.getenv('STORE_DEFAULT_TIMEZONE', 'UTC'),
    # Callers pre-filter reservation snapshots to this horizon
    'RESERVATION_LOOKBACK_DAYS': int(os.getenv('RESERVATION_LOOKBACK_DAYS', '90')),
    'PENDING_BLOCKS_AVAILABILITY_DEFAULT': (
        os.getenv('PENDING_BLOCKS_AVAILABILITY_DEFAULT', 'true').lower() == 'true'
    ),
    # Minimum rental length, in pricing units, when a store sets none
    'DEFAULT_MIN_DURATION': int(os.getenv('DEFAULT_MIN_DURATION', '1')),
}


# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
