"""DTOs for Pricing app - price calculation results."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

from apps.catalog.dtos import PricingTierDTO


@dataclass(frozen=True)
class ProductPricingDTO:
    """Pricing inputs of a product: per-unit base price, per-item deposit and stored tiers."""
    base_price: Decimal
    deposit: Decimal = Decimal('0.00')
    tiers: Sequence[Any] = ()


@dataclass(frozen=True)
class PriceCalculationDTO:
    """
    Untaxed price of a rental line.
    discount and savings are the same figure: original_subtotal - subtotal.
    """
    subtotal: Decimal
    deposit: Decimal
    total: Decimal
    effective_price_per_unit: Decimal
    base_price: Decimal
    duration: int
    quantity: int
    discount: Decimal
    discount_percent: Optional[Decimal]
    tier_applied: Optional[PricingTierDTO]
    original_subtotal: Decimal
    savings: Decimal
    savings_percent: int


@dataclass(frozen=True)
class TaxConfigDTO:
    """Tax that applies to one calculation."""
    enabled: bool
    rate: Decimal
    display_mode: str


@dataclass(frozen=True)
class TaxedPriceCalculationDTO:
    """Price calculation with the excl/tax/incl triad per amount. Deposits are never taxed."""
    calculation: PriceCalculationDTO
    subtotal_excl_tax: Decimal
    deposit_excl_tax: Decimal
    total_excl_tax: Decimal
    subtotal_tax: Decimal
    deposit_tax: Decimal
    total_tax: Decimal
    subtotal_incl_tax: Decimal
    deposit_incl_tax: Decimal
    total_incl_tax: Decimal
    tax_rate: Optional[Decimal]
    tax_enabled: bool


@dataclass(frozen=True)
class PricingBreakdownDTO:
    """Pricing snapshot stored alongside a reservation line."""
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


@dataclass(frozen=True)
class RateDTO:
    """A rental package: price for a fixed period of minutes."""
    id: str
    price: Decimal
    period_minutes: int
    display_order: int = 0


@dataclass(frozen=True)
class RatePlanEntryDTO:
    rate: RateDTO
    quantity: int


@dataclass(frozen=True)
class BestRateDTO:
    """Cheapest combination of rate packages covering a duration."""
    total_cost: Decimal
    covered_minutes: int
    plan: List[RatePlanEntryDTO] = field(default_factory=list)


@dataclass(frozen=True)
class RateBasedPricingDTO:
    """Pricing of a product sold by rate packages instead of discount tiers."""
    base_price: Decimal
    base_period_minutes: int
    deposit: Decimal = Decimal('0.00')
    rates: Tuple[RateDTO, ...] = ()


@dataclass(frozen=True)
class RateCalculationDTO:
    """Price of a rental line computed from rate packages."""
    subtotal: Decimal
    deposit: Decimal
    total: Decimal
    applied_rate: Optional[RateDTO]
    periods_used: int
    savings: Decimal
    reduction_percent: Optional[Decimal]
    duration_minutes: int
    quantity: int
    original_subtotal: Decimal
