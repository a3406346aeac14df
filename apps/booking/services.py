"""
Services for Booking app - the booking request pipeline.

A request runs through the policy rules first, then through availability
and combination resolution for every line, and finally through pricing.
Failures are collected as values on the quote. Nothing here persists
anything: the write path calls find_commit_conflicts() again inside its
own transaction, right before it stores the reservation.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

from apps.availability.dtos import (
    CombinationAllocationDTO,
    ProductAvailabilityDTO,
    ReservationDTO,
)
from apps.availability.resolution import allocate_across_combinations, resolve_combination
from apps.availability.services import (
    get_blocking_statuses,
    reserved_quantity_by_combination,
    resolve_product_availability,
)
from apps.catalog.combinations import SelectionMode, get_selection_mode
from apps.catalog.dtos import ProductDTO, ProductUnitDTO
from apps.core.errors import (
    EngineError,
    ErrorCode,
    InsufficientAvailability,
    NoMatchingCombination,
    insufficient_availability,
    product_not_found,
)
from apps.core.money import ZERO
from apps.pricing.services import (
    calculate_duration,
    calculate_rental_price,
    generate_pricing_breakdown,
    pricing_from_product,
)
from apps.pricing.tax import apply_tax_to_calculation, get_product_tax_config
from apps.stores.dtos import StoreSettingsDTO
from apps.stores.rules import enforce_rules, evaluate_reservation_rules, format_warnings_for_log

from .dtos import BookingLineRequestDTO, BookingQuoteDTO, BookingRequestDTO, QuotedLineDTO

logger = logging.getLogger(__name__)


# =============================================================================
# Quote Services
# =============================================================================

def _allocate_line(
    product: ProductDTO,
    line: BookingLineRequestDTO,
    availability: ProductAvailabilityDTO,
) -> Union[List[CombinationAllocationDTO], EngineError]:
    """Pick the combinations a line is served from."""
    if availability.available_quantity < line.quantity:
        return insufficient_availability(
            product.id, line.quantity, availability.available_quantity, product.name
        )

    if not product.track_units:
        resolved = resolve_combination(product, line.quantity, availability)
        if isinstance(resolved, NoMatchingCombination):
            return resolved
        return [CombinationAllocationDTO(
            combination_key=resolved.combination_key,
            selected_attributes=resolved.selected_attributes,
            quantity=line.quantity,
        )]

    # A full selection names one combination; anything less may be split
    mode = get_selection_mode(product.booking_attribute_axes, line.selected_attributes)
    if mode == SelectionMode.FULL:
        resolved = resolve_combination(product, line.quantity, availability, line.selected_attributes)
        if isinstance(resolved, NoMatchingCombination):
            return resolved
        return [CombinationAllocationDTO(
            combination_key=resolved.combination_key,
            selected_attributes=resolved.selected_attributes,
            quantity=line.quantity,
        )]

    return allocate_across_combinations(
        product, availability.combinations, line.selected_attributes, line.quantity
    )


def quote_booking(
    request: BookingRequestDTO,
    store: StoreSettingsDTO,
    products: Sequence[ProductDTO],
    units: Sequence[ProductUnitDTO],
    reservations: Sequence[ReservationDTO],
    now: Optional[datetime] = None,
) -> BookingQuoteDTO:
    """
    Resolve and price a booking request.

    Lines of the same request draw on the same stock: a line only sees
    what the lines before it left over.
    """
    for line in request.lines:
        if line.quantity < 1:
            raise ValueError("Quantity must be at least 1")

    warnings = evaluate_reservation_rules(request.start, request.end, store, now=now)
    if warnings:
        logger.info(f"Booking request for store {store.store_id}: {format_warnings_for_log(warnings)}")

    blocking = enforce_rules(warnings, request.self_service)
    if not blocking and request.end <= request.start:
        # Staff may override policy but not an empty window
        blocking = [w for w in warnings if w.code == ErrorCode.MIN_DURATION]
    if blocking:
        return BookingQuoteDTO(
            start=request.start,
            end=request.end,
            warnings=warnings,
            failures=list(blocking),
        )

    products_by_id = {p.id: p for p in products}
    reserved = reserved_quantity_by_combination(
        product_ids=products_by_id.keys(),
        start=request.start,
        end=request.end,
        reservations=reservations,
        blocking_statuses=get_blocking_statuses(store),
        exclude_reservation_id=request.exclude_reservation_id,
    )
    consumed: Dict[Tuple[str, str], int] = defaultdict(int, reserved)

    quoted: List[QuotedLineDTO] = []
    failures: List[EngineError] = []
    for line in request.lines:
        product = products_by_id.get(line.product_id)
        if product is None:
            failures.append(product_not_found(line.product_id, line.quantity))
            continue

        availability = resolve_product_availability(product, units, consumed)
        allocations = _allocate_line(product, line, availability)
        if isinstance(allocations, EngineError):
            failures.append(allocations)
            continue

        for allocation in allocations:
            consumed[(product.id, allocation.combination_key)] += allocation.quantity

        duration = calculate_duration(request.start, request.end, product.pricing_mode)
        calculation = calculate_rental_price(pricing_from_product(product), duration, line.quantity)
        taxed = apply_tax_to_calculation(
            calculation, get_product_tax_config(store.tax, product.tax_settings)
        )
        quoted.append(QuotedLineDTO(
            line_id=line.line_id,
            product_id=product.id,
            quantity=line.quantity,
            allocations=allocations,
            price=taxed,
            breakdown=generate_pricing_breakdown(calculation, product.pricing_mode, taxed),
        ))

    return BookingQuoteDTO(
        start=request.start,
        end=request.end,
        lines=quoted,
        warnings=warnings,
        failures=failures,
        subtotal=sum((q.price.calculation.subtotal for q in quoted), ZERO),
        deposit=sum((q.price.calculation.deposit for q in quoted), ZERO),
        total=sum((q.price.calculation.total for q in quoted), ZERO),
        subtotal_excl_tax=sum((q.price.subtotal_excl_tax for q in quoted), ZERO),
        total_tax=sum((q.price.total_tax for q in quoted), ZERO),
        total_excl_tax=sum((q.price.total_excl_tax for q in quoted), ZERO),
        total_incl_tax=sum((q.price.total_incl_tax for q in quoted), ZERO),
    )


# =============================================================================
# Commit-time Re-validation
# =============================================================================

def find_commit_conflicts(
    quote: BookingQuoteDTO,
    store: StoreSettingsDTO,
    products: Sequence[ProductDTO],
    units: Sequence[ProductUnitDTO],
    reservations: Sequence[ReservationDTO],
    exclude_reservation_id: Optional[str] = None,
) -> List[InsufficientAvailability]:
    """
    Re-check a quote against a fresh reservation snapshot.

    Another booking may have taken the stock since the quote was made. Every
    shortfall comes back as a retryable InsufficientAvailability; an empty
    list means the reservation can be committed. When the quote edits an
    existing reservation, pass its id as exclude_reservation_id.
    """
    demand_by_combination: Dict[Tuple[str, str], int] = defaultdict(int)
    demand_by_product: Dict[str, int] = defaultdict(int)
    for line in quote.lines:
        for allocation in line.allocations:
            demand_by_combination[(line.product_id, allocation.combination_key)] += allocation.quantity
        demand_by_product[line.product_id] += line.quantity

    if not demand_by_product:
        return []

    products_by_id = {p.id: p for p in products}
    reserved = reserved_quantity_by_combination(
        product_ids=demand_by_product.keys(),
        start=quote.start,
        end=quote.end,
        reservations=reservations,
        blocking_statuses=get_blocking_statuses(store),
        exclude_reservation_id=exclude_reservation_id,
    )

    conflicts = []
    for product_id, requested in demand_by_product.items():
        product = products_by_id.get(product_id)
        if product is None:
            conflicts.append(insufficient_availability(product_id, requested, 0, retryable=True))
            continue

        availability = resolve_product_availability(product, units, reserved)
        if availability.available_quantity < requested:
            conflicts.append(insufficient_availability(
                product_id, requested, availability.available_quantity, product.name, retryable=True
            ))
            continue

        if not product.track_units:
            continue

        by_key = {c.combination_key: c.available_quantity for c in availability.combinations or ()}
        for (demand_product_id, key), quantity in demand_by_combination.items():
            if demand_product_id != product_id:
                continue
            available = by_key.get(key, 0)
            if available < quantity:
                conflicts.append(insufficient_availability(
                    product_id, quantity, available, product.name, retryable=True
                ))

    if conflicts:
        logger.warning(
            f"Commit conflicts for booking {quote.start.isoformat()} - {quote.end.isoformat()}: "
            f"{', '.join(c.product_id for c in conflicts)}"
        )
    return conflicts
