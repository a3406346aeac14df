"""API Schemas for Pricing app - price calculation output contracts."""
from typing import List, Optional
from decimal import Decimal
from ninja import Schema

from apps.catalog.dtos import PricingTierDTO

from .dtos import PricingBreakdownDTO, TaxedPriceCalculationDTO


class PricingTierOut(Schema):
    """Discount tier."""
    id: Optional[str] = None
    min_duration: int
    discount_percent: Decimal
    display_order: int = 0


class PriceCalculationWithTaxOut(Schema):
    """Price of a rental line with the excl/tax/incl triad per amount."""
    subtotal: Decimal
    deposit: Decimal
    total: Decimal
    effective_price_per_unit: Decimal
    base_price: Decimal
    duration: int
    quantity: int
    discount: Decimal
    discount_percent: Optional[Decimal]
    tier_applied: Optional[PricingTierOut]
    original_subtotal: Decimal
    savings: Decimal
    savings_percent: int

    subtotal_excl_tax: Decimal
    deposit_excl_tax: Decimal
    total_excl_tax: Decimal
    subtotal_tax: Decimal
    deposit_tax: Decimal  # Always 0, deposits are not taxed
    total_tax: Decimal
    subtotal_incl_tax: Decimal
    deposit_incl_tax: Decimal
    total_incl_tax: Decimal
    tax_rate: Optional[Decimal]
    tax_enabled: bool


class PricingBreakdownOut(Schema):
    base_price: Decimal
    effective_price: Decimal
    duration: int
    pricing_mode: str
    discount_percent: Optional[Decimal]
    discount_amount: Decimal
    tier_applied: Optional[str]
    tax_rate: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    subtotal_excl_tax: Optional[Decimal] = None
    subtotal_incl_tax: Optional[Decimal] = None


def pricing_tiers_to_schema(tiers: List[PricingTierDTO]) -> List[PricingTierOut]:
    return [PricingTierOut(**t.__dict__) for t in tiers]


def taxed_calculation_to_schema(dto: TaxedPriceCalculationDTO) -> PriceCalculationWithTaxOut:
    calculation = dto.calculation
    fields = {k: v for k, v in dto.__dict__.items() if k != 'calculation'}
    fields.update({k: v for k, v in calculation.__dict__.items() if k != 'tier_applied'})
    tier = calculation.tier_applied
    return PriceCalculationWithTaxOut(
        tier_applied=PricingTierOut(**tier.__dict__) if tier else None,
        **fields,
    )


def pricing_breakdown_to_schema(dto: PricingBreakdownDTO) -> PricingBreakdownOut:
    return PricingBreakdownOut(**dto.__dict__)
