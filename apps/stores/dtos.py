"""DTOs for Stores app - read-only snapshot of a store's rental policy."""
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .choices import PricingMode, TaxDisplayMode


@dataclass(frozen=True)
class DayScheduleDTO:
    """Opening window for one weekday."""
    is_open: bool
    open_time: time = time(9, 0)
    close_time: time = time(18, 0)


@dataclass(frozen=True)
class ClosurePeriodDTO:
    """Closure between two store-local dates, both inclusive."""
    start_date: date
    end_date: date
    name: str = ""
    reason: str = ""


@dataclass(frozen=True)
class BusinessHoursDTO:
    """
    Weekly schedule plus closure periods.
    schedule is keyed by weekday with 0 = Sunday ... 6 = Saturday.
    """
    enabled: bool
    schedule: Dict[int, DayScheduleDTO] = field(default_factory=dict)
    closure_periods: Tuple[ClosurePeriodDTO, ...] = ()


@dataclass(frozen=True)
class BusinessHoursValidationDTO:
    """Result of checking pickup and return instants against business hours."""
    valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TaxSettingsDTO:
    """Store-level tax configuration."""
    enabled: bool
    default_rate: Decimal = Decimal('0')
    display_mode: str = TaxDisplayMode.INCLUSIVE
    tax_label: str = ""
    tax_number: str = ""


@dataclass(frozen=True)
class StoreSettingsDTO:
    """
    Store policy consumed by the engine.

    Duration limits can be expressed three ways; the most specific wins:
    minutes, then hours, then legacy pricing units (min_duration/max_duration).
    """
    store_id: str
    timezone: Optional[str] = None
    pricing_mode: str = PricingMode.DAY
    business_hours: Optional[BusinessHoursDTO] = None
    advance_notice_minutes: int = 0
    min_rental_minutes: Optional[int] = None
    max_rental_minutes: Optional[int] = None
    min_rental_hours: Optional[int] = None
    max_rental_hours: Optional[int] = None
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    pending_blocks_availability: Optional[bool] = None
    tax: Optional[TaxSettingsDTO] = None
    currency: str = "EUR"
