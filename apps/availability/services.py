"""Services for Availability app - overlap calculation and availability resolution."""
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from apps.catalog.choices import UnitStatus
from apps.catalog.combinations import (
    DEFAULT_COMBINATION_KEY,
    build_combination_key,
    canonicalize_attributes,
    combination_sort_key,
)
from apps.catalog.dtos import ProductDTO, ProductUnitDTO
from apps.core.conf import get_engine_setting
from apps.stores.business_hours import validate_rental_period
from apps.stores.dtos import StoreSettingsDTO
from apps.stores.rules import get_minimum_start_time
from apps.stores.services import normalize_timezone

from .choices import ALWAYS_BLOCKING_STATUSES, AvailabilityStatus, ReservationStatus
from .dtos import (
    AdvanceNoticeValidationDTO,
    AvailabilityResponseDTO,
    CombinationAvailabilityDTO,
    ProductAvailabilityDTO,
    ReservationDTO,
)

ReservedBuckets = Dict[Tuple[str, str], int]


# =============================================================================
# Overlap Calculator
# =============================================================================

def get_blocking_statuses(store: Optional[StoreSettingsDTO] = None) -> FrozenSet[str]:
    """
    Reservation statuses that hold inventory for a store.
    Confirmed and ongoing always block; pending blocks unless the store opts out.
    """
    pending_blocks = store.pending_blocks_availability if store else None
    if pending_blocks is None:
        pending_blocks = get_engine_setting('PENDING_BLOCKS_AVAILABILITY_DEFAULT')

    statuses = set(ALWAYS_BLOCKING_STATUSES)
    if pending_blocks:
        statuses.add(ReservationStatus.PENDING)
    return frozenset(statuses)


def ranges_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """Strict half-open overlap: back-to-back windows do not overlap."""
    return a_start < b_end and a_end > b_start


def reserved_quantity_by_combination(
    product_ids: Iterable[str],
    start: datetime,
    end: datetime,
    reservations: Iterable[ReservationDTO],
    blocking_statuses: Optional[Iterable[str]] = None,
    exclude_reservation_id: Optional[str] = None,
) -> ReservedBuckets:
    """
    Quantity already committed during [start, end), keyed by
    (product_id, combination_key).

    Items without a product (custom lines) are skipped; items without a
    combination key count against the default combination. The reservation
    being edited, if any, is passed as exclude_reservation_id so it does not
    count against itself.
    """
    if end <= start:
        raise ValueError("End time must be after start time")

    wanted = set(product_ids)
    statuses = frozenset(blocking_statuses) if blocking_statuses is not None else get_blocking_statuses()

    buckets: ReservedBuckets = defaultdict(int)
    for reservation in reservations:
        if exclude_reservation_id is not None and reservation.id == exclude_reservation_id:
            continue
        if reservation.status not in statuses:
            continue
        if not ranges_overlap(reservation.start, reservation.end, start, end):
            continue
        for item in reservation.items:
            if item.product_id is None or item.product_id not in wanted:
                continue
            key = item.combination_key or DEFAULT_COMBINATION_KEY
            buckets[(item.product_id, key)] += item.quantity
    return dict(buckets)


def reserved_quantity_by_product(buckets: ReservedBuckets) -> Dict[str, int]:
    """Collapse per-combination buckets into per-product totals."""
    totals: Dict[str, int] = defaultdict(int)
    for (product_id, _), quantity in buckets.items():
        totals[product_id] += quantity
    return dict(totals)


def select_reservations_in_horizon(
    reservations: Iterable[ReservationDTO],
    start: datetime,
    lookback_days: Optional[int] = None,
) -> List[ReservationDTO]:
    """
    Pre-filter a reservation snapshot to those ending after start - lookback.
    Callers use this to bound the snapshot they hand to the engine.
    """
    if lookback_days is None:
        lookback_days = get_engine_setting('RESERVATION_LOOKBACK_DAYS')
    horizon = start - timedelta(days=lookback_days)
    return [r for r in reservations if r.end > horizon]


# =============================================================================
# Availability Resolver
# =============================================================================

def availability_status(total_quantity: int, available_quantity: int) -> str:
    if available_quantity <= 0:
        return AvailabilityStatus.UNAVAILABLE
    if available_quantity < total_quantity:
        return AvailabilityStatus.LIMITED
    return AvailabilityStatus.AVAILABLE


def _live_units(product: ProductDTO, units: Iterable[ProductUnitDTO]) -> List[ProductUnitDTO]:
    return [
        unit for unit in units
        if unit.product_id == product.id and unit.status == UnitStatus.AVAILABLE
    ]


def resolve_product_availability(
    product: ProductDTO,
    units: Sequence[ProductUnitDTO],
    reserved: ReservedBuckets,
) -> ProductAvailabilityDTO:
    """
    Availability of one product given the reserved buckets of the window.

    Non-tracked products subtract every bucket of the product from
    total_quantity, whatever combination key an older reservation carries.
    Tracked products group their live units by combination; only
    combinations with at least one live unit are reported.
    """
    if not product.track_units:
        total = max(0, product.total_quantity)
        reserved_quantity = sum(
            quantity for (product_id, _), quantity in reserved.items()
            if product_id == product.id
        )
        available = max(0, total - reserved_quantity)
        return ProductAvailabilityDTO(
            product_id=product.id,
            total_quantity=total,
            reserved_quantity=reserved_quantity,
            available_quantity=available,
            status=availability_status(total, available),
        )

    axes = product.booking_attribute_axes
    grouped: Dict[str, Dict[str, str]] = {}
    counts: Dict[str, int] = defaultdict(int)
    for unit in _live_units(product, units):
        key = build_combination_key(axes, unit.attributes)
        if key not in grouped:
            grouped[key] = canonicalize_attributes(axes, unit.attributes)
        counts[key] += 1

    ordered_keys = sorted(grouped, key=lambda k: (combination_sort_key(axes, grouped[k]), k))

    combinations = []
    for key in ordered_keys:
        total = counts[key]
        reserved_quantity = reserved.get((product.id, key), 0)
        available = max(0, total - reserved_quantity)
        combinations.append(CombinationAvailabilityDTO(
            combination_key=key,
            selected_attributes=dict(grouped[key]),
            total_quantity=total,
            reserved_quantity=reserved_quantity,
            available_quantity=available,
            status=availability_status(total, available),
        ))

    # Reservations on combinations without live units still consume product stock
    total = sum(counts.values())
    product_reserved = sum(
        quantity for (product_id, _), quantity in reserved.items()
        if product_id == product.id
    )
    available = max(0, total - product_reserved)
    return ProductAvailabilityDTO(
        product_id=product.id,
        total_quantity=total,
        reserved_quantity=product_reserved,
        available_quantity=available,
        status=availability_status(total, available),
        combinations=combinations,
    )


def check_advance_notice(
    start: datetime,
    advance_notice_minutes: int,
    now: Optional[datetime] = None,
) -> AdvanceNoticeValidationDTO:
    minimum_start_time = get_minimum_start_time(advance_notice_minutes, now)
    valid = not advance_notice_minutes or start >= minimum_start_time
    return AdvanceNoticeValidationDTO(
        valid=valid,
        minimum_start_time=minimum_start_time,
        advance_notice_minutes=advance_notice_minutes or 0,
    )


def get_storefront_availability(
    store: StoreSettingsDTO,
    products: Sequence[ProductDTO],
    units: Sequence[ProductUnitDTO],
    reservations: Iterable[ReservationDTO],
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
    exclude_reservation_id: Optional[str] = None,
) -> AvailabilityResponseDTO:
    """
    Availability of every given product for [start, end), with the store's
    business-hours and advance-notice checks for the same window.
    """
    if end <= start:
        raise ValueError("End time must be after start time")

    reserved = reserved_quantity_by_combination(
        product_ids=[p.id for p in products],
        start=start,
        end=end,
        reservations=reservations,
        blocking_statuses=get_blocking_statuses(store),
        exclude_reservation_id=exclude_reservation_id,
    )

    results = [resolve_product_availability(p, units, reserved) for p in products]

    business_hours_validation = None
    if store.business_hours and store.business_hours.enabled:
        business_hours_validation = validate_rental_period(
            start, end, store.business_hours, normalize_timezone(store.timezone)
        )

    advance_notice_validation = None
    if store.advance_notice_minutes > 0:
        advance_notice_validation = check_advance_notice(start, store.advance_notice_minutes, now)

    return AvailabilityResponseDTO(
        products=results,
        period_start=start,
        period_end=end,
        business_hours_validation=business_hours_validation,
        advance_notice_validation=advance_notice_validation,
    )
