"""API Schemas for Booking app - booking quote output contract."""
from typing import Any, Dict, List, Optional
from decimal import Decimal
from datetime import datetime
from ninja import Schema

from apps.core.errors import EngineError
from apps.pricing.schemas import (
    PriceCalculationWithTaxOut,
    PricingBreakdownOut,
    pricing_breakdown_to_schema,
    taxed_calculation_to_schema,
)

from .dtos import BookingQuoteDTO, QuotedLineDTO


class EngineErrorOut(Schema):
    """Failure or warning, ready to be localised by the client."""
    code: str
    key: str
    params: Dict[str, Any] = {}
    details: Optional[str] = None


class AllocationOut(Schema):
    combination_key: str
    selected_attributes: Dict[str, str]
    quantity: int


class QuotedLineOut(Schema):
    line_id: Optional[str] = None
    product_id: str
    quantity: int
    allocations: List[AllocationOut]
    price: PriceCalculationWithTaxOut
    breakdown: PricingBreakdownOut


class BookingQuoteOut(Schema):
    """Quote for a booking request."""
    start: datetime  # ISO 8601
    end: datetime    # ISO 8601
    is_bookable: bool
    lines: List[QuotedLineOut]
    warnings: List[EngineErrorOut]
    failures: List[EngineErrorOut]
    subtotal: Decimal
    deposit: Decimal
    total: Decimal
    subtotal_excl_tax: Decimal
    total_tax: Decimal
    total_excl_tax: Decimal
    total_incl_tax: Decimal


def engine_error_to_schema(error: EngineError) -> EngineErrorOut:
    return EngineErrorOut(code=error.code, key=error.key, params=dict(error.params), details=error.details)


def quoted_line_to_schema(line: QuotedLineDTO) -> QuotedLineOut:
    return QuotedLineOut(
        line_id=line.line_id,
        product_id=line.product_id,
        quantity=line.quantity,
        allocations=[AllocationOut(**a.__dict__) for a in line.allocations],
        price=taxed_calculation_to_schema(line.price),
        breakdown=pricing_breakdown_to_schema(line.breakdown),
    )


def booking_quote_to_schema(quote: BookingQuoteDTO) -> BookingQuoteOut:
    return BookingQuoteOut(
        start=quote.start,
        end=quote.end,
        is_bookable=quote.is_bookable,
        lines=[quoted_line_to_schema(line) for line in quote.lines],
        warnings=[engine_error_to_schema(w) for w in quote.warnings],
        failures=[engine_error_to_schema(f) for f in quote.failures],
        subtotal=quote.subtotal,
        deposit=quote.deposit,
        total=quote.total,
        subtotal_excl_tax=quote.subtotal_excl_tax,
        total_tax=quote.total_tax,
        total_excl_tax=quote.total_excl_tax,
        total_incl_tax=quote.total_incl_tax,
    )
