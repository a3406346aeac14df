"""
Tax on rental prices.

Stores keep prices either tax-inclusive or tax-exclusive. Whichever way they
are stored, a taxed calculation carries all three figures (excl, tax, incl)
for subtotal, deposit and total. Deposits are refunded, so they are never taxed.
"""
from decimal import Decimal
from typing import Optional

from apps.catalog.dtos import ProductTaxSettingsDTO
from apps.core.money import ZERO, Number, round_currency, to_decimal
from apps.stores.choices import TaxDisplayMode
from apps.stores.dtos import TaxSettingsDTO

from .dtos import PriceCalculationDTO, TaxConfigDTO, TaxedPriceCalculationDTO

HUNDRED = Decimal('100')


def calculate_tax_from_exclusive(amount_excl_tax: Number, rate: Number) -> Decimal:
    """tax = amount * rate / 100"""
    return round_currency(to_decimal(amount_excl_tax) * to_decimal(rate) / HUNDRED)


def extract_exclusive_from_inclusive(amount_incl_tax: Number, rate: Number) -> Decimal:
    """excl = amount / (1 + rate / 100)"""
    return round_currency(to_decimal(amount_incl_tax) / (1 + to_decimal(rate) / HUNDRED))


def extract_tax_from_inclusive(amount_incl_tax: Number, rate: Number) -> Decimal:
    amount = round_currency(amount_incl_tax)
    return amount - extract_exclusive_from_inclusive(amount, rate)


def tax_settings_to_config(tax_settings: Optional[TaxSettingsDTO]) -> Optional[TaxConfigDTO]:
    """Store tax settings as a config, or None when the store does not charge tax."""
    if tax_settings is None or not tax_settings.enabled:
        return None
    return TaxConfigDTO(
        enabled=True,
        rate=to_decimal(tax_settings.default_rate),
        display_mode=tax_settings.display_mode,
    )


def get_effective_tax_rate(
    store_config: Optional[TaxConfigDTO],
    product_tax: Optional[ProductTaxSettingsDTO],
) -> Optional[Decimal]:
    """
    Rate for one product: its custom rate when it opts out of the store rate,
    the store rate otherwise. None when the store does not charge tax; a
    product cannot turn tax on by itself.
    """
    if store_config is None or not store_config.enabled:
        return None
    if product_tax and not product_tax.inherit_from_store and product_tax.custom_rate is not None:
        return to_decimal(product_tax.custom_rate)
    return store_config.rate


def get_product_tax_config(
    store_tax: Optional[TaxSettingsDTO],
    product_tax: Optional[ProductTaxSettingsDTO],
) -> Optional[TaxConfigDTO]:
    store_config = tax_settings_to_config(store_tax)
    rate = get_effective_tax_rate(store_config, product_tax)
    if rate is None:
        return None
    return TaxConfigDTO(enabled=True, rate=rate, display_mode=store_config.display_mode)


def apply_tax_to_calculation(
    result: PriceCalculationDTO,
    tax_config: Optional[TaxConfigDTO],
) -> TaxedPriceCalculationDTO:
    """Split every amount into excl/tax/incl according to the display mode."""
    deposit = result.deposit

    if tax_config is None or not tax_config.enabled:
        return TaxedPriceCalculationDTO(
            calculation=result,
            subtotal_excl_tax=result.subtotal,
            deposit_excl_tax=deposit,
            total_excl_tax=result.total,
            subtotal_tax=ZERO,
            deposit_tax=ZERO,
            total_tax=ZERO,
            subtotal_incl_tax=result.subtotal,
            deposit_incl_tax=deposit,
            total_incl_tax=result.total,
            tax_rate=None,
            tax_enabled=False,
        )

    rate = tax_config.rate
    if tax_config.display_mode == TaxDisplayMode.EXCLUSIVE:
        subtotal_excl_tax = result.subtotal
        subtotal_tax = calculate_tax_from_exclusive(subtotal_excl_tax, rate)
        subtotal_incl_tax = subtotal_excl_tax + subtotal_tax
    else:
        subtotal_incl_tax = result.subtotal
        subtotal_excl_tax = extract_exclusive_from_inclusive(subtotal_incl_tax, rate)
        subtotal_tax = subtotal_incl_tax - subtotal_excl_tax

    return TaxedPriceCalculationDTO(
        calculation=result,
        subtotal_excl_tax=subtotal_excl_tax,
        deposit_excl_tax=deposit,
        total_excl_tax=subtotal_excl_tax + deposit,
        subtotal_tax=subtotal_tax,
        deposit_tax=ZERO,
        total_tax=subtotal_tax,
        subtotal_incl_tax=subtotal_incl_tax,
        deposit_incl_tax=deposit,
        total_incl_tax=subtotal_incl_tax + deposit,
        tax_rate=rate,
        tax_enabled=True,
    )


def format_tax_label(tax_label: Optional[str], rate: Number, locale: str = 'fr') -> str:
    """e.g. 'TVA (20%)', 'VAT (5.5%)'"""
    label = tax_label or ('TVA' if locale == 'fr' else 'VAT')
    return f"{label} ({to_decimal(rate).normalize():f}%)"
