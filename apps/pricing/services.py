"""Services for Pricing app - durations, discount tiers and rental prices."""
import json
import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from functools import reduce
from math import gcd
from typing import Any, List, Optional, Sequence

from apps.catalog.dtos import PricingTierDTO, ProductDTO
from apps.core.errors import ErrorCode, InvalidTierConfiguration
from apps.core.money import ZERO, round_currency, to_decimal
from apps.stores.choices import PricingMode
from apps.stores.services import get_pricing_unit_minutes

from .dtos import (
    BestRateDTO,
    PriceCalculationDTO,
    PricingBreakdownDTO,
    ProductPricingDTO,
    RateBasedPricingDTO,
    RateCalculationDTO,
    RateDTO,
    RatePlanEntryDTO,
    TaxedPriceCalculationDTO,
)

logger = logging.getLogger(__name__)

MAX_DISCOUNT_PERCENT = Decimal('99')

PRICING_MODE_LABELS = {
    PricingMode.HOUR: ('hour', 'hours'),
    PricingMode.DAY: ('day', 'days'),
    PricingMode.WEEK: ('week', 'weeks'),
}


# =============================================================================
# Duration Services
# =============================================================================

def _ceil_periods(start: datetime, end: datetime, unit: timedelta) -> int:
    if end <= start:
        raise ValueError("End time must be after start time")
    periods, remainder = divmod(end - start, unit)
    if remainder:
        periods += 1
    return max(1, periods)


def calculate_duration(start: datetime, end: datetime, pricing_mode: str) -> int:
    """
    Billable duration in pricing units.
    Any started unit is billed in full, and a rental is never shorter than one unit.
    """
    unit = timedelta(minutes=get_pricing_unit_minutes(pricing_mode))
    return _ceil_periods(start, end, unit)


def calculate_duration_minutes(start: datetime, end: datetime) -> int:
    return _ceil_periods(start, end, timedelta(minutes=1))


def get_pricing_mode_label(pricing_mode: str, plural: bool = False) -> str:
    singular, plural_label = PRICING_MODE_LABELS[PricingMode(pricing_mode)]
    return plural_label if plural else singular


# =============================================================================
# Tier Services
# =============================================================================

def _as_whole_number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        try:
            decimal_value = to_decimal(value)
        except InvalidOperation:
            return None
        if decimal_value.is_finite() and decimal_value == decimal_value.to_integral_value():
            return int(decimal_value)
    return None


def _as_percent(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        percent = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not percent.is_finite():
        return None
    return percent


def _coerce_tier(raw: Any) -> Optional[PricingTierDTO]:
    if isinstance(raw, PricingTierDTO):
        min_duration, discount = raw.min_duration, raw.discount_percent
        tier_id, display_order = raw.id, raw.display_order
    elif isinstance(raw, dict):
        min_duration = raw.get('min_duration', raw.get('minDuration'))
        discount = raw.get('discount_percent', raw.get('discountPercent'))
        tier_id = raw.get('id')
        display_order = raw.get('display_order', raw.get('displayOrder', 0))
    else:
        return None

    min_duration = _as_whole_number(min_duration)
    discount = _as_percent(discount)
    if min_duration is None or min_duration < 1:
        return None
    if discount is None or discount < 0 or discount > MAX_DISCOUNT_PERCENT:
        return None

    return PricingTierDTO(
        min_duration=min_duration,
        discount_percent=discount,
        id=tier_id,
        display_order=_as_whole_number(display_order) or 0,
    )


def normalize_tiers(raw_tiers: Any) -> List[PricingTierDTO]:
    """
    Usable tiers out of stored tier data.

    Accepts PricingTierDTOs, dicts (snake_case or camelCase keys) or a JSON
    string of those. Malformed entries are dropped with a warning so a bad
    tier never blocks a price calculation.
    """
    if not raw_tiers:
        return []

    if isinstance(raw_tiers, str):
        try:
            raw_tiers = json.loads(raw_tiers)
        except ValueError:
            logger.warning("Ignoring pricing tiers: not valid JSON")
            return []

    if not isinstance(raw_tiers, (list, tuple)):
        logger.warning(f"Ignoring pricing tiers: expected a list, got {type(raw_tiers).__name__}")
        return []

    tiers = []
    for index, raw in enumerate(raw_tiers):
        tier = _coerce_tier(raw)
        if tier is None:
            logger.warning(f"Ignoring malformed pricing tier #{index}: {raw!r}")
            continue
        tiers.append(tier)
    return tiers


def _tier_error(index: int, reason: str) -> InvalidTierConfiguration:
    return InvalidTierConfiguration(
        code=ErrorCode.INVALID_TIER_CONFIGURATION,
        key='errors.invalidPricingTiers',
        params={'reason': reason, 'index': index},
        tier_index=index,
    )


def validate_pricing_tiers(tiers: Sequence[PricingTierDTO]) -> List[InvalidTierConfiguration]:
    """
    Check tiers before they are saved on a product.
    Durations must be unique and at least 1; discounts must be within [0, 99].
    """
    errors = []
    seen = set()
    for index, tier in enumerate(tiers):
        if tier.min_duration in seen:
            errors.append(_tier_error(index, 'duplicate_duration'))
        seen.add(tier.min_duration)

        if tier.min_duration < 1:
            errors.append(_tier_error(index, 'min_duration_below_one'))

        discount = to_decimal(tier.discount_percent)
        if discount < 0 or discount > MAX_DISCOUNT_PERCENT:
            errors.append(_tier_error(index, 'discount_out_of_range'))
    return errors


def find_applicable_tier(tiers: Sequence[PricingTierDTO], duration: int) -> Optional[PricingTierDTO]:
    """Tier with the largest min_duration the duration reaches, if any."""
    applicable = [t for t in tiers if 0 < t.min_duration <= duration]
    return max(applicable, key=lambda t: t.min_duration, default=None)


def sort_tiers_by_duration(tiers: Sequence[PricingTierDTO]) -> List[PricingTierDTO]:
    return sorted(tiers, key=lambda t: t.min_duration)


def get_available_durations(
    tiers: Sequence[PricingTierDTO],
    enforce_strict_tiers: bool,
) -> Optional[List[int]]:
    """
    Durations a customer may pick when the product sells fixed packages.
    None means any duration is allowed. The base unit (1) is always offered.
    """
    if not enforce_strict_tiers or not tiers:
        return None
    return sorted({1, *(t.min_duration for t in tiers)})


def snap_to_nearest_tier(duration: int, available_durations: Sequence[int]) -> int:
    """Round a duration up to the next package; past the last one, use the last one."""
    if not available_durations:
        return duration
    return next((d for d in available_durations if d >= duration), available_durations[-1])


# =============================================================================
# Price Calculation Services
# =============================================================================

def calculate_effective_price(base_price: Decimal, tier: Optional[PricingTierDTO]) -> Decimal:
    """Unit price after the tier discount, rounded half-up to the cent."""
    base_price = to_decimal(base_price)
    if tier is None:
        return round_currency(base_price)
    discount = to_decimal(tier.discount_percent)
    return round_currency(base_price * (Decimal('100') - discount) / Decimal('100'))


def pricing_from_product(product: ProductDTO) -> ProductPricingDTO:
    return ProductPricingDTO(
        base_price=product.base_price,
        deposit=product.deposit,
        tiers=tuple(product.pricing_tiers or ()),
    )


def calculate_rental_price(
    pricing: ProductPricingDTO,
    duration: int,
    quantity: int,
) -> PriceCalculationDTO:
    """
    Price a rental line.

    The subtotal is the discounted unit price times duration times quantity.
    The deposit is charged per item and is never discounted.
    """
    if duration < 1:
        raise ValueError("Duration must be at least 1")
    if quantity < 1:
        raise ValueError("Quantity must be at least 1")

    base_price = to_decimal(pricing.base_price)
    tier = find_applicable_tier(normalize_tiers(pricing.tiers), duration)
    effective_price = calculate_effective_price(base_price, tier)

    original_subtotal = round_currency(base_price * duration * quantity)
    subtotal = round_currency(effective_price * duration * quantity)
    deposit = round_currency(to_decimal(pricing.deposit) * quantity)
    savings = original_subtotal - subtotal

    savings_percent = 0
    if original_subtotal > 0:
        savings_percent = int((savings * 100 / original_subtotal).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    return PriceCalculationDTO(
        subtotal=subtotal,
        deposit=deposit,
        total=subtotal + deposit,
        effective_price_per_unit=effective_price,
        base_price=base_price,
        duration=duration,
        quantity=quantity,
        discount=savings,
        discount_percent=tier.discount_percent if tier else None,
        tier_applied=tier,
        original_subtotal=original_subtotal,
        savings=savings,
        savings_percent=savings_percent,
    )


def generate_pricing_breakdown(
    result: PriceCalculationDTO,
    pricing_mode: str,
    taxed: Optional[TaxedPriceCalculationDTO] = None,
) -> PricingBreakdownDTO:
    """Snapshot of how a line was priced, kept with the reservation."""
    tier_label = None
    if result.tier_applied:
        min_duration = result.tier_applied.min_duration
        tier_label = f"{min_duration}+ {get_pricing_mode_label(pricing_mode, min_duration > 1)}"

    tax_rate = tax_amount = subtotal_excl_tax = subtotal_incl_tax = None
    if taxed is not None and taxed.tax_enabled:
        tax_rate = taxed.tax_rate
        tax_amount = taxed.subtotal_tax
        subtotal_excl_tax = taxed.subtotal_excl_tax
        subtotal_incl_tax = taxed.subtotal_incl_tax

    return PricingBreakdownDTO(
        base_price=result.base_price,
        effective_price=result.effective_price_per_unit,
        duration=result.duration,
        pricing_mode=pricing_mode,
        discount_percent=result.discount_percent,
        discount_amount=result.savings,
        tier_applied=tier_label,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        subtotal_excl_tax=subtotal_excl_tax,
        subtotal_incl_tax=subtotal_incl_tax,
    )


# =============================================================================
# Rate Package Services
# =============================================================================

def calculate_best_rate(duration_minutes: int, rates: Sequence[RateDTO]) -> BestRateDTO:
    """
    Cheapest combination of rate packages covering at least duration_minutes.

    Dynamic programming over steps of the gcd of all package periods, up to
    one longest package past the target. Ties go to the plan with fewer
    packages, then to the shortest covered duration.
    """
    usable = sorted(
        (r for r in rates if r.period_minutes > 0 and to_decimal(r.price) >= 0),
        key=lambda r: r.period_minutes,
    )
    if not usable:
        return BestRateDTO(total_cost=ZERO, covered_minutes=duration_minutes, plan=[])

    target_minutes = max(1, duration_minutes)
    scale = reduce(gcd, [r.period_minutes for r in usable])
    rate_steps = [r.period_minutes // scale for r in usable]
    prices = [to_decimal(r.price) for r in usable]
    target_steps = max(1, -(-target_minutes // scale))
    max_steps = target_steps + max(rate_steps)

    cost: List[Optional[Decimal]] = [None] * (max_steps + 1)
    segments = [0] * (max_steps + 1)
    prev_step = [-1] * (max_steps + 1)
    prev_rate = [-1] * (max_steps + 1)
    cost[0] = ZERO

    for step in range(1, max_steps + 1):
        for index, rate_step in enumerate(rate_steps):
            if step < rate_step or cost[step - rate_step] is None:
                continue
            source = step - rate_step
            candidate = cost[source] + prices[index]
            candidate_segments = segments[source] + 1
            if (
                cost[step] is None
                or candidate < cost[step]
                or (candidate == cost[step] and candidate_segments < segments[step])
            ):
                cost[step] = candidate
                segments[step] = candidate_segments
                prev_step[step] = source
                prev_rate[step] = index

    # A multiple of the shortest package always lands in [target, max_steps]
    best_step = None
    for step in range(target_steps, max_steps + 1):
        if cost[step] is None:
            continue
        if (
            best_step is None
            or cost[step] < cost[best_step]
            or (cost[step] == cost[best_step] and segments[step] < segments[best_step])
        ):
            best_step = step

    quantities = [0] * len(usable)
    cursor = best_step
    while cursor > 0:
        quantities[prev_rate[cursor]] += 1
        cursor = prev_step[cursor]

    plan = [
        RatePlanEntryDTO(rate=rate, quantity=count)
        for rate, count in zip(usable, quantities)
        if count > 0
    ]
    return BestRateDTO(
        total_cost=round_currency(cost[best_step]),
        covered_minutes=best_step * scale,
        plan=plan,
    )


def calculate_rental_price_by_rates(
    pricing: RateBasedPricingDTO,
    duration_minutes: int,
    quantity: int,
) -> RateCalculationDTO:
    """Price a rental line from rate packages, the base period being one of them."""
    if pricing.base_period_minutes <= 0:
        raise ValueError("Base period must be positive")
    if quantity < 1:
        raise ValueError("Quantity must be at least 1")

    duration_minutes = max(1, duration_minutes)
    base_rate = RateDTO(
        id='__base__',
        price=to_decimal(pricing.base_price),
        period_minutes=pricing.base_period_minutes,
        display_order=-1,
    )
    best = calculate_best_rate(duration_minutes, [base_rate, *pricing.rates])

    subtotal = round_currency(best.total_cost * quantity)
    deposit = round_currency(to_decimal(pricing.deposit) * quantity)

    base_periods = -(-duration_minutes // pricing.base_period_minutes)
    original_subtotal = round_currency(base_rate.price * base_periods * quantity)
    savings = original_subtotal - subtotal
    reduction_percent = None
    if original_subtotal > 0:
        reduction_percent = round_currency(savings * 100 / original_subtotal)

    dominant = max(best.plan, key=lambda entry: entry.quantity, default=None)

    return RateCalculationDTO(
        subtotal=subtotal,
        deposit=deposit,
        total=subtotal + deposit,
        applied_rate=dominant.rate if dominant else None,
        periods_used=sum(entry.quantity for entry in best.plan),
        savings=savings,
        reduction_percent=reduction_percent,
        duration_minutes=duration_minutes,
        quantity=quantity,
        original_subtotal=original_subtotal,
    )
