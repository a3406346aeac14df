"""
Services for Stores app.
Resolves store policy values (timezone, rental duration bounds) and builds
StoreSettingsDTO snapshots from the JSON settings blob stores carry.
"""
import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apps.core.conf import get_engine_setting

from .choices import PricingMode, PRICING_UNIT_MINUTES, TaxDisplayMode
from .dtos import (
    BusinessHoursDTO, ClosurePeriodDTO, DayScheduleDTO,
    StoreSettingsDTO, TaxSettingsDTO,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Timezone Services
# =============================================================================

def normalize_timezone(name: Optional[str]) -> ZoneInfo:
    """
    Return the store's IANA timezone.
    Blank or unknown names fall back to DEFAULT_STORE_TIMEZONE.
    """
    default_name = get_engine_setting('DEFAULT_STORE_TIMEZONE')
    if isinstance(name, str) and name.strip():
        try:
            return ZoneInfo(name.strip())
        except (ZoneInfoNotFoundError, ValueError, OSError):
            logger.warning(f"Invalid store timezone {name!r}, falling back to {default_name}")
    return ZoneInfo(default_name)


def to_store_local(instant: datetime, tz: ZoneInfo) -> datetime:
    """Convert an aware instant to store-local wall time."""
    if instant.tzinfo is None:
        raise ValueError("Naive datetimes are not accepted; pass timezone-aware instants")
    return instant.astimezone(tz)


# =============================================================================
# Rental Duration Services
# =============================================================================

def get_pricing_unit_minutes(pricing_mode: str) -> int:
    """Minutes in one pricing unit (hour/day/week)."""
    try:
        return PRICING_UNIT_MINUTES[PricingMode(pricing_mode)]
    except ValueError:
        raise ValueError(f"Unknown pricing mode: {pricing_mode}")


def get_min_rental_minutes(store: StoreSettingsDTO) -> int:
    """
    Minimum rental length in minutes. 0 means no restriction.

    Explicit minutes win, then hours, then the legacy min_duration counted in
    pricing units (DEFAULT_MIN_DURATION units when the store sets nothing).
    """
    if store.min_rental_minutes is not None:
        return max(0, store.min_rental_minutes)
    if store.min_rental_hours is not None:
        return max(0, store.min_rental_hours * 60)

    min_duration = store.min_duration
    if min_duration is None:
        min_duration = get_engine_setting('DEFAULT_MIN_DURATION')
    return max(0, min_duration * get_pricing_unit_minutes(store.pricing_mode))


def get_max_rental_minutes(store: StoreSettingsDTO) -> Optional[int]:
    """Maximum rental length in minutes, or None for no limit."""
    if store.max_rental_minutes is not None:
        return store.max_rental_minutes
    if store.max_rental_hours is not None:
        return store.max_rental_hours * 60
    if store.max_duration is not None:
        return store.max_duration * get_pricing_unit_minutes(store.pricing_mode)
    return None


# =============================================================================
# Snapshot Builders
# =============================================================================

def build_store_settings(store_id: str, data: Optional[Dict[str, Any]]) -> StoreSettingsDTO:
    """
    Build a StoreSettingsDTO from a store's JSON settings.

    Keys follow the stored camelCase layout, e.g.:
        {
            "pricingMode": "day",
            "timezone": "Europe/Paris",
            "advanceNoticeMinutes": 1440,
            "minRentalHours": 4,
            "maxRentalHours": null,
            "pendingBlocksAvailability": true,
            "businessHours": {"enabled": true, "schedule": {...}, "closurePeriods": [...]},
            "tax": {"enabled": true, "defaultRate": 20, "displayMode": "exclusive"}
        }
    Unknown keys are ignored.
    """
    data = data or {}
    return StoreSettingsDTO(
        store_id=store_id,
        timezone=data.get('timezone'),
        pricing_mode=data.get('pricingMode') or PricingMode.DAY,
        business_hours=_build_business_hours(data.get('businessHours')),
        advance_notice_minutes=int(data.get('advanceNoticeMinutes') or 0),
        min_rental_minutes=_optional_int(data.get('minRentalMinutes')),
        max_rental_minutes=_optional_int(data.get('maxRentalMinutes')),
        min_rental_hours=_optional_int(data.get('minRentalHours')),
        max_rental_hours=_optional_int(data.get('maxRentalHours')),
        min_duration=_optional_int(data.get('minDuration')),
        max_duration=_optional_int(data.get('maxDuration')),
        pending_blocks_availability=data.get('pendingBlocksAvailability'),
        tax=_build_tax_settings(data.get('tax')),
        currency=data.get('currency') or "EUR",
    )


def _build_business_hours(data: Optional[Dict[str, Any]]) -> Optional[BusinessHoursDTO]:
    if not data:
        return None

    schedule = {}
    for weekday, day in (data.get('schedule') or {}).items():
        schedule[int(weekday)] = DayScheduleDTO(
            is_open=bool(day.get('isOpen')),
            open_time=_parse_time(day.get('openTime') or '00:00'),
            close_time=_parse_time(day.get('closeTime') or '23:59'),
        )

    closures = []
    for period in data.get('closurePeriods') or []:
        # Periods without both bounds never match; skip them
        if not period.get('startDate') or not period.get('endDate'):
            continue
        try:
            closures.append(ClosurePeriodDTO(
                start_date=date.fromisoformat(period['startDate'][:10]),
                end_date=date.fromisoformat(period['endDate'][:10]),
                name=period.get('name', ''),
                reason=period.get('reason') or '',
            ))
        except ValueError:
            logger.warning(f"Skipping closure period with invalid dates: {period}")

    return BusinessHoursDTO(
        enabled=bool(data.get('enabled')),
        schedule=schedule,
        closure_periods=tuple(closures),
    )


def _build_tax_settings(data: Optional[Dict[str, Any]]) -> Optional[TaxSettingsDTO]:
    if not data:
        return None
    return TaxSettingsDTO(
        enabled=bool(data.get('enabled')),
        default_rate=Decimal(str(data.get('defaultRate') or 0)),
        display_mode=data.get('displayMode') or TaxDisplayMode.INCLUSIVE,
        tax_label=data.get('taxLabel') or '',
        tax_number=data.get('taxNumber') or '',
    )


def _parse_time(value: str) -> time:
    hours, minutes = value.split(':')[:2]
    return time(int(hours), int(minutes))


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    return int(value)
