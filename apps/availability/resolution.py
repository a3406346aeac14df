"""
Combination resolution for unit-tracked products.

Given the availability of a product for a window, picks which attribute
combination serves a request. The pick is deterministic: candidates are
ordered by the product's declared axes and values, never by the order the
combinations happen to arrive in, so equivalent requests resolve to the
same combination.
"""
import logging
from typing import List, Optional, Sequence, Union

from apps.catalog.combinations import (
    DEFAULT_COMBINATION_KEY,
    Attributes,
    SelectionMode,
    combination_sort_key,
    get_selection_mode,
    matches_selected_attributes,
)
from apps.catalog.dtos import AttributeAxisDTO, ProductDTO
from apps.core.errors import NoMatchingCombination, no_matching_combination

from .choices import AllocationMode
from .dtos import (
    CombinationAllocationDTO,
    CombinationAvailabilityDTO,
    CombinationResolutionDTO,
    ProductAvailabilityDTO,
    SelectionCapacityDTO,
)

logger = logging.getLogger(__name__)


def get_matching_combinations(
    combinations: Optional[Sequence[CombinationAvailabilityDTO]],
    selected_attributes: Optional[Attributes],
) -> List[CombinationAvailabilityDTO]:
    return [
        c for c in (combinations or ())
        if matches_selected_attributes(selected_attributes, c.selected_attributes)
    ]


def _sorted_matches(
    axes: Optional[Sequence[AttributeAxisDTO]],
    combinations: Optional[Sequence[CombinationAvailabilityDTO]],
    selected_attributes: Optional[Attributes],
) -> List[CombinationAvailabilityDTO]:
    return sorted(
        get_matching_combinations(combinations, selected_attributes),
        key=lambda c: (combination_sort_key(axes, c.selected_attributes), c.combination_key),
    )


def resolve_combination(
    product: ProductDTO,
    requested_quantity: int,
    availability: ProductAvailabilityDTO,
    selected_attributes: Optional[Attributes] = None,
) -> Union[CombinationResolutionDTO, NoMatchingCombination]:
    """
    Pick the first combination, in canonical order, that matches the
    selection and still has requested_quantity available.

    Non-tracked products resolve to the default combination when the
    product as a whole has enough stock.
    """
    if requested_quantity < 1:
        raise ValueError("Requested quantity must be at least 1")

    if not product.track_units:
        if availability.available_quantity >= requested_quantity:
            return CombinationResolutionDTO(
                combination_key=DEFAULT_COMBINATION_KEY,
                selected_attributes={},
                available_quantity=availability.available_quantity,
            )
        logger.info(
            f"No stock for product {product.id}: requested {requested_quantity}, "
            f"available {availability.available_quantity}"
        )
        return no_matching_combination(product.id, requested_quantity, product.name)

    candidates = _sorted_matches(
        product.booking_attribute_axes, availability.combinations, selected_attributes
    )
    for combination in candidates:
        if combination.available_quantity >= requested_quantity:
            return CombinationResolutionDTO(
                combination_key=combination.combination_key,
                selected_attributes=dict(combination.selected_attributes),
                available_quantity=combination.available_quantity,
            )

    logger.info(
        f"No combination of product {product.id} matches {dict(selected_attributes or {})} "
        f"with {requested_quantity} available"
    )
    return no_matching_combination(product.id, requested_quantity, product.name)


def get_max_available_for_selection(
    combinations: Optional[Sequence[CombinationAvailabilityDTO]],
    selected_attributes: Optional[Attributes],
) -> int:
    """Largest quantity a single matching combination can serve."""
    matching = get_matching_combinations(combinations, selected_attributes)
    return max((max(0, c.available_quantity) for c in matching), default=0)


def get_total_available_for_selection(
    combinations: Optional[Sequence[CombinationAvailabilityDTO]],
    selected_attributes: Optional[Attributes],
) -> int:
    """Quantity all matching combinations can serve together."""
    matching = get_matching_combinations(combinations, selected_attributes)
    return sum(max(0, c.available_quantity) for c in matching)


def get_selection_capacity(
    axes: Optional[Sequence[AttributeAxisDTO]],
    combinations: Optional[Sequence[CombinationAvailabilityDTO]],
    selected_attributes: Optional[Attributes],
) -> SelectionCapacityDTO:
    """
    A full selection names one combination, so it is served by a single one.
    Partial or empty selections may be split across every match.
    """
    mode = get_selection_mode(axes, selected_attributes)
    if mode == SelectionMode.FULL:
        return SelectionCapacityDTO(
            mode=mode,
            allocation_mode=AllocationMode.SINGLE,
            capacity=get_max_available_for_selection(combinations, selected_attributes),
        )
    return SelectionCapacityDTO(
        mode=mode,
        allocation_mode=AllocationMode.SPLIT,
        capacity=get_total_available_for_selection(combinations, selected_attributes),
    )


def allocate_across_combinations(
    product: ProductDTO,
    combinations: Optional[Sequence[CombinationAvailabilityDTO]],
    selected_attributes: Optional[Attributes],
    quantity: int,
) -> Union[List[CombinationAllocationDTO], NoMatchingCombination]:
    """
    Spread quantity greedily over the matching combinations in canonical
    order, taking as much as possible from each before moving on.
    """
    if quantity < 1:
        return []

    remaining = quantity
    allocations = []
    for combination in _sorted_matches(product.booking_attribute_axes, combinations, selected_attributes):
        if remaining <= 0:
            break
        available = max(0, combination.available_quantity)
        if available == 0:
            continue
        take = min(available, remaining)
        allocations.append(CombinationAllocationDTO(
            combination_key=combination.combination_key,
            selected_attributes=dict(combination.selected_attributes),
            quantity=take,
        ))
        remaining -= take

    if remaining > 0:
        logger.info(
            f"Cannot allocate {quantity} of product {product.id}: {quantity - remaining} available"
        )
        return no_matching_combination(product.id, quantity, product.name)

    return allocations
