"""DTOs for Availability app - reservation snapshots and availability results."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from apps.stores.dtos import BusinessHoursValidationDTO


@dataclass(frozen=True)
class ReservationItemDTO:
    """
    One line of an existing reservation.
    product_id is None for custom/ad-hoc lines, which never hold catalog stock.
    combination_key and selected_attributes are the snapshot taken at booking time.
    """
    product_id: Optional[str]
    quantity: int
    combination_key: Optional[str] = None
    selected_attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ReservationDTO:
    """Existing reservation over the half-open interval [start, end)."""
    id: str
    start: datetime
    end: datetime
    status: str
    items: Tuple[ReservationItemDTO, ...] = ()


@dataclass(frozen=True)
class CombinationAvailabilityDTO:
    """Availability of one attribute combination for the requested window."""
    combination_key: str
    selected_attributes: Dict[str, str]
    total_quantity: int
    reserved_quantity: int
    available_quantity: int
    status: str


@dataclass(frozen=True)
class ProductAvailabilityDTO:
    """
    Availability of one product for the requested window.
    combinations is only set for unit-tracked products.
    """
    product_id: str
    total_quantity: int
    reserved_quantity: int
    available_quantity: int
    status: str
    combinations: Optional[List[CombinationAvailabilityDTO]] = None


@dataclass(frozen=True)
class AdvanceNoticeValidationDTO:
    """Whether the window starts late enough for the store's advance notice."""
    valid: bool
    minimum_start_time: datetime
    advance_notice_minutes: int


@dataclass(frozen=True)
class AvailabilityResponseDTO:
    """Storefront availability for a window."""
    products: List[ProductAvailabilityDTO]
    period_start: datetime
    period_end: datetime
    business_hours_validation: Optional[BusinessHoursValidationDTO] = None
    advance_notice_validation: Optional[AdvanceNoticeValidationDTO] = None


@dataclass(frozen=True)
class CombinationResolutionDTO:
    """The concrete combination picked for a request."""
    combination_key: str
    selected_attributes: Dict[str, str]
    available_quantity: int


@dataclass(frozen=True)
class CombinationAllocationDTO:
    """Part of a request served by one combination."""
    combination_key: str
    selected_attributes: Dict[str, str]
    quantity: int


@dataclass(frozen=True)
class SelectionCapacityDTO:
    """How many units a (possibly partial) attribute selection can still take."""
    mode: str
    allocation_mode: str
    capacity: int
