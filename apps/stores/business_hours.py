"""
Business-hours checks, evaluated in the store's timezone.

A rental is picked up once and returned once, so only the pickup and
return instants are held against the schedule; days strictly between them
are not inspected.
"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from .choices import BusinessHoursReason
from .dtos import BusinessHoursDTO, BusinessHoursValidationDTO, ClosurePeriodDTO, DayScheduleDTO
from .services import to_store_local

# Slots offered when a store has no business hours configured
DEFAULT_SLOTS_START = time(7, 0)
DEFAULT_SLOTS_END = time(21, 0)


def store_weekday(day: date) -> int:
    """Weekday index with 0 = Sunday, matching the schedule keys."""
    return (day.weekday() + 1) % 7


def get_day_schedule(day: date, business_hours: BusinessHoursDTO) -> DayScheduleDTO:
    """Schedule for a store-local date. Missing weekdays count as closed."""
    return business_hours.schedule.get(store_weekday(day), DayScheduleDTO(is_open=False))


def find_closure_period(
    day: date,
    business_hours: BusinessHoursDTO,
) -> Optional[ClosurePeriodDTO]:
    """Return the closure period covering a store-local date, if any."""
    for period in business_hours.closure_periods:
        if period.start_date <= day <= period.end_date:
            return period
    return None


def check_instant(
    instant: datetime,
    business_hours: Optional[BusinessHoursDTO],
    tz: ZoneInfo,
) -> Optional[str]:
    """
    Check one instant against business hours.
    Returns None when allowed, otherwise a BusinessHoursReason value.
    """
    if not business_hours or not business_hours.enabled:
        return None

    local = to_store_local(instant, tz)

    if find_closure_period(local.date(), business_hours):
        return BusinessHoursReason.CLOSURE_PERIOD

    schedule = get_day_schedule(local.date(), business_hours)
    if not schedule.is_open:
        return BusinessHoursReason.DAY_CLOSED

    # Minute precision, both bounds inclusive
    local_time = local.time().replace(second=0, microsecond=0)
    if local_time < schedule.open_time or local_time > schedule.close_time:
        return BusinessHoursReason.OUTSIDE_HOURS

    return None


def validate_rental_period(
    start: datetime,
    end: datetime,
    business_hours: Optional[BusinessHoursDTO],
    tz: ZoneInfo,
) -> BusinessHoursValidationDTO:
    """
    Validate pickup (start) and return (end) against business hours.
    Errors read pickup_<reason> / return_<reason>.
    """
    if not business_hours or not business_hours.enabled:
        return BusinessHoursValidationDTO(valid=True)

    errors = []
    pickup_reason = check_instant(start, business_hours, tz)
    if pickup_reason:
        errors.append(f"pickup_{pickup_reason}")

    return_reason = check_instant(end, business_hours, tz)
    if return_reason:
        errors.append(f"return_{return_reason}")

    return BusinessHoursValidationDTO(valid=not errors, errors=errors)


def is_date_available(day: date, business_hours: Optional[BusinessHoursDTO]) -> bool:
    """A store-local date is available when it is open and not in a closure."""
    if not business_hours or not business_hours.enabled:
        return True
    if find_closure_period(day, business_hours):
        return False
    return get_day_schedule(day, business_hours).is_open


def generate_time_slots(start: time, end: time, interval_minutes: int = 30) -> List[str]:
    """HH:MM slots from start to end inclusive, every interval_minutes."""
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")

    slots = []
    current = start.hour * 60 + start.minute
    last = end.hour * 60 + end.minute
    while current <= last:
        slots.append(f"{current // 60:02d}:{current % 60:02d}")
        current += interval_minutes
    return slots


def get_available_time_slots(
    day: date,
    business_hours: Optional[BusinessHoursDTO],
    interval_minutes: int = 30,
) -> List[str]:
    """Bookable HH:MM slots for a store-local date."""
    if not business_hours or not business_hours.enabled:
        return generate_time_slots(DEFAULT_SLOTS_START, DEFAULT_SLOTS_END, interval_minutes)

    if not is_date_available(day, business_hours):
        return []

    schedule = get_day_schedule(day, business_hours)
    return generate_time_slots(schedule.open_time, schedule.close_time, interval_minutes)


def get_next_available_date(
    from_day: date,
    business_hours: Optional[BusinessHoursDTO],
    max_days: int = 365,
) -> Optional[date]:
    """First available store-local date on or after from_day, searching max_days ahead."""
    if not business_hours or not business_hours.enabled:
        return from_day

    day = from_day
    for _ in range(max_days):
        if is_date_available(day, business_hours):
            return day
        day += timedelta(days=1)
    return None
