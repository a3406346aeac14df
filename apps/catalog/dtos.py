"""DTOs for Catalog app - product and tracked-unit snapshots."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, Tuple

from apps.stores.choices import PricingMode

from .choices import UnitStatus


@dataclass(frozen=True)
class AttributeAxisDTO:
    """
    A bookable attribute of a product (e.g. size) and its declared values.
    position orders the axes; the order of values drives combination ordering.
    """
    key: str
    label: str = ""
    position: int = 0
    values: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PricingTierDTO:
    """Discount that applies from min_duration pricing units upward."""
    min_duration: int
    discount_percent: Decimal
    id: Optional[str] = None
    display_order: int = 0


@dataclass(frozen=True)
class ProductTaxSettingsDTO:
    """Per-product tax override."""
    inherit_from_store: bool = True
    custom_rate: Optional[Decimal] = None


@dataclass(frozen=True)
class ProductDTO:
    """
    Product snapshot.

    total_quantity is the stock of a non-tracked product; tracked products
    count their live units instead. pricing_tiers is taken as stored and may
    contain malformed entries, which pricing ignores.
    """
    id: str
    name: str = ""
    total_quantity: int = 0
    track_units: bool = False
    booking_attribute_axes: Tuple[AttributeAxisDTO, ...] = ()
    base_price: Decimal = Decimal('0.00')
    pricing_mode: str = PricingMode.DAY
    pricing_tiers: Sequence[Any] = ()
    deposit: Decimal = Decimal('0.00')
    tax_settings: Optional[ProductTaxSettingsDTO] = None
    enforce_strict_tiers: bool = False


@dataclass(frozen=True)
class ProductUnitDTO:
    """A physical, individually tracked unit of a product."""
    id: str
    product_id: str
    attributes: Dict[str, str] = field(default_factory=dict)
    status: str = UnitStatus.AVAILABLE
