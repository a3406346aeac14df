"""API Schemas for Availability app - output contracts built from DTOs."""
from typing import Dict, List, Optional
from datetime import datetime
from ninja import Schema

from .dtos import (
    AvailabilityResponseDTO,
    CombinationResolutionDTO,
    ProductAvailabilityDTO,
    SelectionCapacityDTO,
)


# =============================================================================
# Response Schemas
# =============================================================================

class CombinationAvailabilityOut(Schema):
    """Availability of one attribute combination."""
    combination_key: str
    selected_attributes: Dict[str, str]
    total_quantity: int
    reserved_quantity: int
    available_quantity: int
    status: str


class ProductAvailabilityOut(Schema):
    """Availability of one product; combinations only for tracked products."""
    product_id: str
    total_quantity: int
    reserved_quantity: int
    available_quantity: int
    status: str
    combinations: Optional[List[CombinationAvailabilityOut]] = None


class PeriodOut(Schema):
    start: datetime  # ISO 8601
    end: datetime    # ISO 8601


class BusinessHoursValidationOut(Schema):
    valid: bool
    errors: List[str]


class AdvanceNoticeValidationOut(Schema):
    valid: bool
    minimum_start_time: datetime
    advance_notice_minutes: int


class AvailabilityResponseOut(Schema):
    """Storefront availability for a window."""
    products: List[ProductAvailabilityOut]
    period: PeriodOut
    business_hours_validation: Optional[BusinessHoursValidationOut] = None
    advance_notice_validation: Optional[AdvanceNoticeValidationOut] = None


class CombinationResolutionOut(Schema):
    """Combination picked for a request."""
    combination_key: str
    selected_attributes: Dict[str, str]
    available_quantity: int


class SelectionCapacityOut(Schema):
    mode: str
    allocation_mode: str
    capacity: int


# =============================================================================
# Builders
# =============================================================================

def product_availability_to_schema(dto: ProductAvailabilityDTO) -> ProductAvailabilityOut:
    combinations = None
    if dto.combinations is not None:
        combinations = [CombinationAvailabilityOut(**c.__dict__) for c in dto.combinations]
    return ProductAvailabilityOut(
        product_id=dto.product_id,
        total_quantity=dto.total_quantity,
        reserved_quantity=dto.reserved_quantity,
        available_quantity=dto.available_quantity,
        status=dto.status,
        combinations=combinations,
    )


def availability_response_to_schema(dto: AvailabilityResponseDTO) -> AvailabilityResponseOut:
    business_hours = None
    if dto.business_hours_validation is not None:
        business_hours = BusinessHoursValidationOut(**dto.business_hours_validation.__dict__)

    advance_notice = None
    if dto.advance_notice_validation is not None:
        advance_notice = AdvanceNoticeValidationOut(**dto.advance_notice_validation.__dict__)

    return AvailabilityResponseOut(
        products=[product_availability_to_schema(p) for p in dto.products],
        period=PeriodOut(start=dto.period_start, end=dto.period_end),
        business_hours_validation=business_hours,
        advance_notice_validation=advance_notice,
    )


def combination_resolution_to_schema(dto: CombinationResolutionDTO) -> CombinationResolutionOut:
    return CombinationResolutionOut(**dto.__dict__)


def selection_capacity_to_schema(dto: SelectionCapacityDTO) -> SelectionCapacityOut:
    return SelectionCapacityOut(**dto.__dict__)
