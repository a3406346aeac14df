"""
Temporal policy validator.

Runs four independent checks (business hours, advance notice, minimum and
maximum duration) and collects every violation so the caller can present
them together. Whether a violation blocks the booking is the caller's
decision: staff-created bookings may override, self-service flows may not
(see enforce_rules).
"""
from datetime import datetime, timedelta
from typing import List, Optional

from django.utils import timezone

from apps.core.errors import ErrorCode, PolicyViolation

from .business_hours import validate_rental_period
from .dtos import StoreSettingsDTO
from .services import get_max_rental_minutes, get_min_rental_minutes, normalize_timezone

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 60 * 24


def get_minimum_start_time(advance_notice_minutes: int, now: Optional[datetime] = None) -> datetime:
    """Earliest instant a rental may start."""
    now = now or timezone.now()
    return now + timedelta(minutes=advance_notice_minutes or 0)


def format_duration_from_minutes(minutes: int) -> str:
    """
    Human-readable duration for message parameters.
    Examples: "45 minutes", "2 hours", "1 day 3 hours".
    """
    days, remainder = divmod(max(0, int(minutes)), MINUTES_PER_DAY)
    hours, mins = divmod(remainder, MINUTES_PER_HOUR)

    parts = []
    if days:
        parts.append(f"{days} day{'s' if days != 1 else ''}")
    if hours:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if mins or not parts:
        parts.append(f"{mins} minute{'s' if mins != 1 else ''}")
    return " ".join(parts)


def evaluate_reservation_rules(
    start: datetime,
    end: datetime,
    store: StoreSettingsDTO,
    now: Optional[datetime] = None,
) -> List[PolicyViolation]:
    """
    Validate a requested window against store temporal policy.

    Returns zero or one PolicyViolation per check:
    - business_hours: pickup/return instant on a closed day, in a closure
      period or outside opening hours (store timezone)
    - advance_notice: start earlier than now + advance notice
    - min_duration / max_duration: window length out of bounds; an end at
      or before the start is reported as min_duration
    """
    warnings = []

    tz = normalize_timezone(store.timezone)
    business_hours_validation = validate_rental_period(start, end, store.business_hours, tz)
    if not business_hours_validation.valid:
        reasons = ", ".join(business_hours_validation.errors)
        warnings.append(PolicyViolation(
            code=ErrorCode.BUSINESS_HOURS,
            key="errors.businessHoursViolation",
            params={"reasons": reasons},
            details=reasons,
        ))

    advance_notice_minutes = store.advance_notice_minutes or 0
    if advance_notice_minutes > 0:
        minimum_start = get_minimum_start_time(advance_notice_minutes, now)
        if start < minimum_start:
            warnings.append(PolicyViolation(
                code=ErrorCode.ADVANCE_NOTICE,
                key="errors.advanceNoticeViolation",
                params={
                    "duration": format_duration_from_minutes(advance_notice_minutes),
                    "minimumStartTime": minimum_start.isoformat(),
                },
            ))

    duration_minutes = (end - start).total_seconds() / 60

    min_minutes = get_min_rental_minutes(store)
    # An empty or inverted window never meets any minimum
    if duration_minutes <= 0 or (min_minutes > 0 and duration_minutes < min_minutes):
        warnings.append(PolicyViolation(
            code=ErrorCode.MIN_DURATION,
            key="errors.minRentalDurationViolation",
            params={"duration": format_duration_from_minutes(min_minutes)},
        ))

    max_minutes = get_max_rental_minutes(store)
    if max_minutes is not None and duration_minutes > max_minutes:
        warnings.append(PolicyViolation(
            code=ErrorCode.MAX_DURATION,
            key="errors.maxRentalDurationViolation",
            params={"duration": format_duration_from_minutes(max_minutes)},
        ))

    return warnings


def enforce_rules(warnings: List[PolicyViolation], self_service: bool) -> List[PolicyViolation]:
    """
    Apply the caller policy: every violation blocks a self-service booking,
    none block a staff-created one.
    """
    return list(warnings) if self_service else []


def format_warnings_for_log(warnings: List[PolicyViolation]) -> str:
    """One-line summary of policy warnings for logs."""
    if not warnings:
        return ""

    parts = []
    for warning in warnings:
        if warning.code == ErrorCode.BUSINESS_HOURS:
            parts.append(
                f"outside business hours ({warning.details})" if warning.details
                else "outside business hours"
            )
        elif warning.code == ErrorCode.ADVANCE_NOTICE:
            parts.append(f"advance notice not met ({warning.params.get('duration', '?')})")
        elif warning.code == ErrorCode.MIN_DURATION:
            parts.append(f"minimum duration not met ({warning.params.get('duration', '?')})")
        elif warning.code == ErrorCode.MAX_DURATION:
            parts.append(f"maximum duration exceeded ({warning.params.get('duration', '?')})")
        else:
            parts.append(warning.key)

    return f"Validation warnings: {'; '.join(parts)}"
