"""
Unit tests for tax application.
Tests inclusive/exclusive modes, product overrides and untaxed deposits.
"""
from decimal import Decimal
from django.test import SimpleTestCase

from apps.catalog.dtos import PricingTierDTO, ProductTaxSettingsDTO
from apps.pricing import tax
from apps.pricing.dtos import ProductPricingDTO, TaxConfigDTO
from apps.pricing.schemas import taxed_calculation_to_schema
from apps.pricing.services import calculate_rental_price
from apps.stores.choices import TaxDisplayMode
from apps.stores.dtos import TaxSettingsDTO

TIERS = (
    PricingTierDTO(min_duration=3, discount_percent=Decimal('10')),
    PricingTierDTO(min_duration=7, discount_percent=Decimal('20')),
)


def seven_day_rental(deposit='200'):
    pricing = ProductPricingDTO(base_price=Decimal('100'), deposit=Decimal(deposit), tiers=TIERS)
    return calculate_rental_price(pricing, duration=7, quantity=1)


class TaxFormulaTest(SimpleTestCase):
    """Test the tax formulas."""

    def test_exclusive(self):
        """Test tax on a pre-tax amount."""
        self.assertEqual(tax.calculate_tax_from_exclusive(Decimal('560.00'), Decimal('20')), Decimal('112.00'))

    def test_inclusive(self):
        """Test extracting the pre-tax amount and the tax."""
        self.assertEqual(tax.extract_exclusive_from_inclusive(Decimal('120.00'), 20), Decimal('100.00'))
        self.assertEqual(tax.extract_tax_from_inclusive(Decimal('120.00'), 20), Decimal('20.00'))
        self.assertEqual(tax.extract_exclusive_from_inclusive(Decimal('10.00'), Decimal('5.5')), Decimal('9.48'))

    def test_round_trip(self):
        """Test extracting tax back out of an exclusive amount plus its tax stays within a cent."""
        for amount in (Decimal('0.01'), Decimal('9.99'), Decimal('560.00'), Decimal('1234.57')):
            for rate in (Decimal('5.5'), Decimal('10'), Decimal('20'), Decimal('21')):
                added = tax.calculate_tax_from_exclusive(amount, rate)
                extracted = tax.extract_tax_from_inclusive(amount + added, rate)
                self.assertLessEqual(abs(extracted - added), Decimal('0.01'))


class ApplyTaxTest(SimpleTestCase):
    """Test taxed calculations."""

    def test_exclusive_store(self):
        """Test 20% exclusive on 560.00 with a 200.00 deposit."""
        config = tax.tax_settings_to_config(
            TaxSettingsDTO(enabled=True, default_rate=Decimal('20'), display_mode=TaxDisplayMode.EXCLUSIVE)
        )

        result = tax.apply_tax_to_calculation(seven_day_rental(), config)

        self.assertEqual(result.subtotal_excl_tax, Decimal('560.00'))
        self.assertEqual(result.subtotal_tax, Decimal('112.00'))
        self.assertEqual(result.subtotal_incl_tax, Decimal('672.00'))
        self.assertEqual(result.deposit_tax, Decimal('0.00'))
        self.assertEqual(result.total_excl_tax, Decimal('760.00'))
        self.assertEqual(result.total_tax, Decimal('112.00'))
        self.assertEqual(result.total_incl_tax, Decimal('872.00'))
        self.assertEqual(result.tax_rate, Decimal('20'))
        self.assertTrue(result.tax_enabled)

    def test_inclusive_store(self):
        """Test tax is extracted from tax-inclusive prices."""
        config = TaxConfigDTO(enabled=True, rate=Decimal('20'), display_mode=TaxDisplayMode.INCLUSIVE)

        result = tax.apply_tax_to_calculation(seven_day_rental(), config)

        self.assertEqual(result.subtotal_incl_tax, Decimal('560.00'))
        self.assertEqual(result.subtotal_excl_tax, Decimal('466.67'))
        self.assertEqual(result.subtotal_tax, Decimal('93.33'))
        self.assertEqual(result.total_incl_tax, Decimal('760.00'))
        self.assertEqual(result.total_excl_tax, Decimal('666.67'))

    def test_disabled(self):
        """Test no tax leaves every figure as-is."""
        result = tax.apply_tax_to_calculation(seven_day_rental(), None)
        self.assertEqual(result.subtotal_incl_tax, result.subtotal_excl_tax)
        self.assertEqual(result.total_incl_tax, Decimal('760.00'))
        self.assertEqual(result.total_tax, Decimal('0.00'))
        self.assertIsNone(result.tax_rate)
        self.assertFalse(result.tax_enabled)

    def test_schema(self):
        """Test the taxed output contract flattens the calculation."""
        config = TaxConfigDTO(enabled=True, rate=Decimal('20'), display_mode=TaxDisplayMode.EXCLUSIVE)
        data = taxed_calculation_to_schema(tax.apply_tax_to_calculation(seven_day_rental(), config)).dict()
        self.assertEqual(data['subtotal'], Decimal('560.00'))
        self.assertEqual(data['total_incl_tax'], Decimal('872.00'))
        self.assertEqual(data['tier_applied']['min_duration'], 7)


class ProductTaxRateTest(SimpleTestCase):
    """Test product-level tax rate resolution."""

    def setUp(self):
        self.store_tax = TaxSettingsDTO(enabled=True, default_rate=Decimal('20'), display_mode=TaxDisplayMode.EXCLUSIVE)

    def test_inherits_store_rate(self):
        """Test products inherit the store rate by default."""
        config = tax.get_product_tax_config(self.store_tax, None)
        self.assertEqual(config.rate, Decimal('20'))

    def test_custom_rate(self):
        """Test a product opting out uses its own rate."""
        product_tax = ProductTaxSettingsDTO(inherit_from_store=False, custom_rate=Decimal('5.5'))
        config = tax.get_product_tax_config(self.store_tax, product_tax)
        self.assertEqual(config.rate, Decimal('5.5'))
        self.assertEqual(config.display_mode, TaxDisplayMode.EXCLUSIVE)

    def test_custom_rate_ignored_when_inheriting(self):
        """Test a custom rate is ignored while inheriting."""
        product_tax = ProductTaxSettingsDTO(inherit_from_store=True, custom_rate=Decimal('5.5'))
        self.assertEqual(tax.get_product_tax_config(self.store_tax, product_tax).rate, Decimal('20'))

    def test_store_disabled_wins(self):
        """Test a product cannot turn tax on when the store has it off."""
        store_tax = TaxSettingsDTO(enabled=False, default_rate=Decimal('20'))
        product_tax = ProductTaxSettingsDTO(inherit_from_store=False, custom_rate=Decimal('10'))
        self.assertIsNone(tax.get_product_tax_config(store_tax, product_tax))
        self.assertIsNone(tax.get_effective_tax_rate(None, product_tax))

    def test_label(self):
        """Test tax labels."""
        self.assertEqual(tax.format_tax_label(None, Decimal('20.00')), 'TVA (20%)')
        self.assertEqual(tax.format_tax_label('', Decimal('5.5'), locale='en'), 'VAT (5.5%)')
        self.assertEqual(tax.format_tax_label('GST', 15), 'GST (15%)')
