"""Access to the RENTAL_ENGINE settings block, with defaults."""
from typing import Any

from django.conf import settings

DEFAULTS = {
    'DEFAULT_STORE_TIMEZONE': 'UTC',
    'RESERVATION_LOOKBACK_DAYS': 90,
    'PENDING_BLOCKS_AVAILABILITY_DEFAULT': True,
    'DEFAULT_MIN_DURATION': 1,
}


def get_engine_setting(name: str) -> Any:
    """
    Read a key from settings.RENTAL_ENGINE.
    Falls back to DEFAULTS when the project does not override it.
    """
    if name not in DEFAULTS:
        raise KeyError(f"Unknown rental engine setting: {name}")
    overrides = getattr(settings, 'RENTAL_ENGINE', None) or {}
    return overrides.get(name, DEFAULTS[name])
