"""
Typed failure values for the rental engine.

Failures are returned, not raised: callers decide whether a given failure
blocks the operation or is only advisory. Every failure carries a stable
machine-readable code, a localisation key and the parameters needed to
format the message.

Usage:
    from apps.core.errors import NoMatchingCombination

    result = resolve_combination(product, 2, availability, {'size': 'M'})
    if isinstance(result, NoMatchingCombination):
        return {'error': result.key, 'errorParams': result.params}
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class ErrorCode:
    """
    Canonical string constants for failure codes.
    Policy codes double as the warning codes shown to staff.
    """
    # ── Temporal policy ───────────────────────────────────────────────
    BUSINESS_HOURS = "business_hours"
    ADVANCE_NOTICE = "advance_notice"
    MIN_DURATION = "min_duration"
    MAX_DURATION = "max_duration"

    # ── Inventory ─────────────────────────────────────────────────────
    INSUFFICIENT_AVAILABILITY = "insufficient_availability"
    NO_MATCHING_COMBINATION = "no_matching_combination"
    PRODUCT_NOT_FOUND = "product_not_found"

    # ── Pricing ───────────────────────────────────────────────────────
    INVALID_TIER_CONFIGURATION = "invalid_tier_configuration"


@dataclass(frozen=True)
class EngineError:
    """Base failure value."""
    code: str
    key: str
    params: Dict[str, Any] = field(default_factory=dict)
    details: Optional[str] = None


@dataclass(frozen=True)
class PolicyViolation(EngineError):
    """Business hours, advance notice or duration bounds not met."""


@dataclass(frozen=True)
class InsufficientAvailability(EngineError):
    """
    Not enough free stock for the window.
    retryable is set when the conflict was detected at commit time.
    """
    product_id: Optional[str] = None
    requested_quantity: int = 0
    available_quantity: int = 0
    retryable: bool = False


@dataclass(frozen=True)
class NoMatchingCombination(EngineError):
    """No attribute combination satisfies the filter and quantity."""
    product_id: Optional[str] = None
    requested_quantity: int = 0


@dataclass(frozen=True)
class InvalidTierConfiguration(EngineError):
    """Malformed or overlapping discount tiers."""
    tier_index: Optional[int] = None


def insufficient_availability(
    product_id: str,
    requested_quantity: int,
    available_quantity: int,
    product_name: str = "",
    retryable: bool = False,
) -> InsufficientAvailability:
    return InsufficientAvailability(
        code=ErrorCode.INSUFFICIENT_AVAILABILITY,
        key="errors.insufficientStock",
        params={"name": product_name or product_id, "count": available_quantity},
        product_id=product_id,
        requested_quantity=requested_quantity,
        available_quantity=available_quantity,
        retryable=retryable,
    )


def no_matching_combination(
    product_id: str,
    requested_quantity: int,
    product_name: str = "",
) -> NoMatchingCombination:
    return NoMatchingCombination(
        code=ErrorCode.NO_MATCHING_COMBINATION,
        key="errors.productNoLongerAvailable",
        params={"name": product_name or product_id},
        product_id=product_id,
        requested_quantity=requested_quantity,
    )


def product_not_found(product_id: str, requested_quantity: int = 0) -> NoMatchingCombination:
    return NoMatchingCombination(
        code=ErrorCode.PRODUCT_NOT_FOUND,
        key="errors.productNoLongerAvailable",
        params={"name": product_id},
        product_id=product_id,
        requested_quantity=requested_quantity,
    )
