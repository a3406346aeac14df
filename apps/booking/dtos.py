"""DTOs for Booking app - booking requests and quotes."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from apps.availability.dtos import CombinationAllocationDTO
from apps.core.errors import EngineError, PolicyViolation
from apps.pricing.dtos import PricingBreakdownDTO, TaxedPriceCalculationDTO


@dataclass(frozen=True)
class BookingLineRequestDTO:
    """One requested product; selected_attributes may name some or all axes."""
    product_id: str
    quantity: int
    selected_attributes: Optional[Dict[str, str]] = None
    line_id: Optional[str] = None


@dataclass(frozen=True)
class BookingRequestDTO:
    """
    A booking request over [start, end).
    self_service requests treat every policy warning as a hard failure.
    exclude_reservation_id names the reservation being edited, whose own
    items must not count against the new window.
    """
    start: datetime
    end: datetime
    lines: Tuple[BookingLineRequestDTO, ...]
    self_service: bool = True
    exclude_reservation_id: Optional[str] = None


@dataclass(frozen=True)
class QuotedLineDTO:
    """A line that can be booked: where its units come from and what it costs."""
    line_id: Optional[str]
    product_id: str
    quantity: int
    allocations: List[CombinationAllocationDTO]
    price: TaxedPriceCalculationDTO
    breakdown: PricingBreakdownDTO


@dataclass(frozen=True)
class BookingQuoteDTO:
    """
    Outcome of a booking request.
    Totals only cover the lines that could be quoted.
    """
    start: datetime
    end: datetime
    lines: List[QuotedLineDTO] = field(default_factory=list)
    warnings: List[PolicyViolation] = field(default_factory=list)
    failures: List[EngineError] = field(default_factory=list)
    subtotal: Decimal = Decimal('0.00')
    deposit: Decimal = Decimal('0.00')
    total: Decimal = Decimal('0.00')
    subtotal_excl_tax: Decimal = Decimal('0.00')
    total_tax: Decimal = Decimal('0.00')
    total_excl_tax: Decimal = Decimal('0.00')
    total_incl_tax: Decimal = Decimal('0.00')

    @property
    def is_bookable(self) -> bool:
        return not self.failures
