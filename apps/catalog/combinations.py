"""
Attribute combinations of tracked units.

A combination groups interchangeable units sharing identical attribute
values. Its key is a canonical serialization in declared axis order
(key:value|key:value), so two attribute maps with the same content always
produce the same key whatever their insertion order.
"""
import re
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .dtos import AttributeAxisDTO

DEFAULT_COMBINATION_KEY = '__default'
MAX_BOOKING_ATTRIBUTE_AXES = 3

Attributes = Mapping[str, str]


class SelectionMode:
    NONE = 'none'
    PARTIAL = 'partial'
    FULL = 'full'


def _normalize_token(value: str) -> str:
    return re.sub(r'\s+', ' ', value.strip())


def normalize_axis_key(value: str) -> str:
    """Lowercase slug used as an axis key, e.g. 'Shoe Size' -> 'shoe_size'."""
    key = _normalize_token(value).lower()
    key = re.sub(r'[^a-z0-9_-]+', '_', key)
    key = re.sub(r'_+', '_', key)
    return key.strip('_')


def normalize_attribute_value(value: str) -> str:
    return _normalize_token(value)


def get_sorted_axes(axes: Optional[Sequence[AttributeAxisDTO]]) -> Tuple[AttributeAxisDTO, ...]:
    return tuple(sorted(axes or (), key=lambda axis: axis.position))


def canonicalize_attributes(
    axes: Optional[Sequence[AttributeAxisDTO]],
    attributes: Optional[Attributes],
) -> Dict[str, str]:
    """Keep only declared axes with a non-blank value, normalized, in axis order."""
    source = attributes or {}
    normalized = {}
    for axis in get_sorted_axes(axes):
        raw_value = source.get(axis.key)
        if not isinstance(raw_value, str):
            continue
        value = normalize_attribute_value(raw_value)
        if value:
            normalized[axis.key] = value
    return normalized


def has_complete_attributes(
    axes: Optional[Sequence[AttributeAxisDTO]],
    attributes: Optional[Attributes],
) -> bool:
    sorted_axes = get_sorted_axes(axes)
    if not sorted_axes:
        return True
    normalized = canonicalize_attributes(sorted_axes, attributes)
    return all(axis.key in normalized for axis in sorted_axes)


def build_combination_key(
    axes: Optional[Sequence[AttributeAxisDTO]],
    attributes: Optional[Attributes],
) -> str:
    """
    Canonical key for a complete attribute set.
    Products without axes, and incomplete attribute sets, use DEFAULT_COMBINATION_KEY.
    """
    sorted_axes = get_sorted_axes(axes)
    if not sorted_axes:
        return DEFAULT_COMBINATION_KEY

    normalized = canonicalize_attributes(sorted_axes, attributes)
    tokens = []
    for axis in sorted_axes:
        value = normalized.get(axis.key)
        if not value:
            return DEFAULT_COMBINATION_KEY
        tokens.append(f"{axis.key}:{value}")
    return '|'.join(tokens)


def build_partial_combination_key(
    axes: Optional[Sequence[AttributeAxisDTO]],
    attributes: Optional[Attributes],
) -> str:
    """Key built from whichever axes are set; used to group partial selections."""
    sorted_axes = get_sorted_axes(axes)
    if not sorted_axes:
        return DEFAULT_COMBINATION_KEY

    normalized = canonicalize_attributes(sorted_axes, attributes)
    tokens = [
        f"{axis.key}:{normalized[axis.key]}"
        for axis in sorted_axes
        if normalized.get(axis.key)
    ]
    return '|'.join(tokens) if tokens else DEFAULT_COMBINATION_KEY


def matches_selected_attributes(
    selected: Optional[Attributes],
    candidate: Optional[Attributes],
) -> bool:
    """
    True when every specified key of selected matches candidate exactly.
    Unspecified or blank keys are wildcards.
    """
    candidate = candidate or {}
    for key, value in (selected or {}).items():
        if not isinstance(value, str):
            continue
        normalized_value = normalize_attribute_value(value)
        if not normalized_value:
            continue
        if normalize_attribute_value(candidate.get(key) or '') != normalized_value:
            return False
    return True


def combination_sort_key(
    axes: Optional[Sequence[AttributeAxisDTO]],
    attributes: Optional[Attributes],
) -> Tuple[Tuple[int, str, str], ...]:
    """
    Deterministic ordering key for a combination.

    Per axis, in declared axis order: the declared position of the value,
    then the casefolded value, then the raw value. Values not declared on
    the axis sort after the declared ones; missing values sort first.
    """
    sorted_axes = get_sorted_axes(axes)
    normalized = canonicalize_attributes(sorted_axes, attributes)

    key = []
    for axis in sorted_axes:
        value = normalized.get(axis.key)
        if value is None:
            key.append((-1, '', ''))
            continue
        declared = [normalize_attribute_value(v) for v in axis.values]
        position = declared.index(value) if value in declared else len(declared)
        key.append((position, value.casefold(), value))
    return tuple(key)


def get_selection_mode(
    axes: Optional[Sequence[AttributeAxisDTO]],
    selected: Optional[Attributes],
) -> str:
    """none: nothing chosen, partial: some axes chosen, full: every axis chosen."""
    sorted_axes = get_sorted_axes(axes)
    if not sorted_axes:
        return SelectionMode.NONE

    selected_count = len(canonicalize_attributes(sorted_axes, selected))
    if selected_count == 0:
        return SelectionMode.NONE
    if selected_count >= len(sorted_axes):
        return SelectionMode.FULL
    return SelectionMode.PARTIAL
