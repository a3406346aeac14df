"""
Unit tests for availability services.
Tests the overlap calculator and the availability resolver.
"""
from datetime import timedelta
from django.test import SimpleTestCase, override_settings

from apps.availability import services
from apps.availability.choices import AvailabilityStatus, ReservationStatus
from apps.catalog.combinations import DEFAULT_COMBINATION_KEY
from apps.catalog.dtos import ProductDTO
from apps.stores.dtos import StoreSettingsDTO

from .factories import (
    WINDOW_END, WINDOW_START, item, make_reservation, tracked_product, units_for,
)


class RangesOverlapTest(SimpleTestCase):
    """Test half-open interval overlap."""

    def test_symmetric(self):
        """Test overlap(A, B) == overlap(B, A)."""
        a = (WINDOW_START, WINDOW_START + timedelta(days=2))
        b = (WINDOW_START + timedelta(days=1), WINDOW_START + timedelta(days=4))
        c = (WINDOW_START + timedelta(days=5), WINDOW_START + timedelta(days=6))
        for x, y in [(a, b), (a, c), (b, c)]:
            self.assertEqual(services.ranges_overlap(*x, *y), services.ranges_overlap(*y, *x))

    def test_interval_overlaps_itself(self):
        """Test a non-empty interval overlaps itself."""
        self.assertTrue(services.ranges_overlap(WINDOW_START, WINDOW_END, WINDOW_START, WINDOW_END))

    def test_back_to_back_do_not_overlap(self):
        """Test a return at the exact next pickup instant frees the stock."""
        self.assertFalse(services.ranges_overlap(
            WINDOW_START - timedelta(days=1), WINDOW_START, WINDOW_START, WINDOW_END
        ))


class BlockingStatusesTest(SimpleTestCase):
    """Test the statuses that hold inventory."""

    def test_pending_blocks_by_default(self):
        """Test pending, confirmed and ongoing block by default."""
        self.assertEqual(
            services.get_blocking_statuses(StoreSettingsDTO(store_id='s')),
            {ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.ONGOING},
        )

    def test_store_opts_out_of_pending(self):
        """Test a store can stop pending reservations from blocking."""
        store = StoreSettingsDTO(store_id='s', pending_blocks_availability=False)
        self.assertEqual(
            services.get_blocking_statuses(store),
            {ReservationStatus.CONFIRMED, ReservationStatus.ONGOING},
        )

    @override_settings(RENTAL_ENGINE={'PENDING_BLOCKS_AVAILABILITY_DEFAULT': False})
    def test_project_default(self):
        """Test the project-wide default applies when the store is silent."""
        self.assertNotIn(ReservationStatus.PENDING, services.get_blocking_statuses(StoreSettingsDTO(store_id='s')))


class ReservedQuantityTest(SimpleTestCase):
    """Test the overlap calculator."""

    def reserved(self, reservations, **kwargs):
        return services.reserved_quantity_by_combination(
            ['tent', 'bike'], WINDOW_START, WINDOW_END, reservations, **kwargs
        )

    def test_sums_blocking_overlapping_items(self):
        """Test quantities accumulate per product and combination."""
        reservations = [
            make_reservation([item('tent', 2), item('bike', 1, 'size:M|color:Red')], id='r-1'),
            make_reservation([item('tent', 1)], status=ReservationStatus.PENDING, id='r-2'),
            make_reservation([item('bike', 2, 'size:M|color:Red')], status=ReservationStatus.ONGOING, id='r-3'),
        ]
        self.assertEqual(self.reserved(reservations), {
            ('tent', DEFAULT_COMBINATION_KEY): 3,
            ('bike', 'size:M|color:Red'): 3,
        })

    def test_ignores_non_blocking_statuses(self):
        """Test cancelled, rejected and completed reservations hold nothing."""
        reservations = [
            make_reservation([item('tent', 1)], status=status)
            for status in (ReservationStatus.CANCELLED, ReservationStatus.REJECTED, ReservationStatus.COMPLETED)
        ]
        self.assertEqual(self.reserved(reservations), {})

    def test_pending_excluded_when_not_blocking(self):
        """Test pending reservations are skipped when the status set excludes them."""
        reservations = [make_reservation([item('tent', 1)], status=ReservationStatus.PENDING)]
        statuses = {ReservationStatus.CONFIRMED, ReservationStatus.ONGOING}
        self.assertEqual(self.reserved(reservations, blocking_statuses=statuses), {})

    def test_ignores_custom_lines_and_other_products(self):
        """Test custom lines and unrequested products are skipped."""
        reservations = [make_reservation([item(None, 4), item('kayak', 2), item('tent', 1)])]
        self.assertEqual(self.reserved(reservations), {('tent', DEFAULT_COMBINATION_KEY): 1})

    def test_ignores_non_overlapping(self):
        """Test reservations ending at the window start are ignored."""
        reservations = [make_reservation(
            [item('tent', 5)], start=WINDOW_START - timedelta(days=2), end=WINDOW_START
        )]
        self.assertEqual(self.reserved(reservations), {})

    def test_per_product_totals(self):
        """Test buckets collapse into product totals."""
        buckets = {('bike', 'size:M|color:Red'): 2, ('bike', 'size:S|color:Red'): 1, ('tent', DEFAULT_COMBINATION_KEY): 4}
        self.assertEqual(services.reserved_quantity_by_product(buckets), {'bike': 3, 'tent': 4})

    def test_excludes_reservation_being_edited(self):
        """Test the edited reservation does not count against its own window."""
        reservations = [
            make_reservation([item('tent', 2)], id='r-edit'),
            make_reservation([item('tent', 1)], id='r-other'),
        ]
        self.assertEqual(
            self.reserved(reservations, exclude_reservation_id='r-edit'),
            {('tent', DEFAULT_COMBINATION_KEY): 1},
        )

    def test_invalid_window(self):
        """Test an empty window raises ValueError."""
        with self.assertRaises(ValueError):
            services.reserved_quantity_by_combination(['tent'], WINDOW_END, WINDOW_START, [])

    def test_horizon_prefilter(self):
        """Test reservations that ended before the horizon are dropped."""
        old = make_reservation([item('tent', 1)], start=WINDOW_START - timedelta(days=50),
                               end=WINDOW_START - timedelta(days=40), id='old')
        recent = make_reservation([item('tent', 1)], id='recent')
        kept = services.select_reservations_in_horizon([old, recent], WINDOW_START, lookback_days=30)
        self.assertEqual([r.id for r in kept], ['recent'])


class ResolveProductAvailabilityTest(SimpleTestCase):
    """Test the availability resolver."""

    def test_non_tracked_limited(self):
        """Test total 5 with a confirmed reservation of 3 leaves 2, limited."""
        tent = ProductDTO(id='tent', total_quantity=5)
        reserved = services.reserved_quantity_by_combination(
            ['tent'], WINDOW_START, WINDOW_END, [make_reservation([item('tent', 3)])]
        )

        result = services.resolve_product_availability(tent, [], reserved)

        self.assertEqual(result.available_quantity, 2)
        self.assertEqual(result.reserved_quantity, 3)
        self.assertEqual(result.status, AvailabilityStatus.LIMITED)
        self.assertIsNone(result.combinations)

    def test_non_tracked_counts_keyed_items(self):
        """Test items carrying a combination key still reduce a non-tracked product."""
        tent = ProductDTO(id='tent', total_quantity=5)
        reserved = services.reserved_quantity_by_combination(
            ['tent'], WINDOW_START, WINDOW_END, [make_reservation([item('tent', 3, 'size:M')])]
        )

        result = services.resolve_product_availability(tent, [], reserved)

        self.assertEqual(result.reserved_quantity, 3)
        self.assertEqual(result.available_quantity, 2)

    def test_overbooked_never_negative(self):
        """Test reserved above total clamps availability at zero."""
        tent = ProductDTO(id='tent', total_quantity=5)
        result = services.resolve_product_availability(tent, [], {('tent', DEFAULT_COMBINATION_KEY): 7})
        self.assertEqual(result.available_quantity, 0)
        self.assertEqual(result.status, AvailabilityStatus.UNAVAILABLE)

    def test_nothing_reserved(self):
        """Test full stock is available."""
        tent = ProductDTO(id='tent', total_quantity=5)
        result = services.resolve_product_availability(tent, [], {})
        self.assertEqual(result.available_quantity, 5)
        self.assertEqual(result.status, AvailabilityStatus.AVAILABLE)

    def test_tracked_groups_live_units(self):
        """Test units are grouped by combination, dead units excluded."""
        bike = tracked_product()
        units = (
            units_for('bike', {('L', 'Red'): 1, ('M', 'Blue'): 2, ('M', 'Red'): 2})
            + units_for('bike', {('S', 'Red'): 3}, status='maintenance')
        )
        reserved = {('bike', 'size:M|color:Red'): 2}

        result = services.resolve_product_availability(bike, units, reserved)

        self.assertEqual(
            [c.combination_key for c in result.combinations],
            ['size:M|color:Red', 'size:M|color:Blue', 'size:L|color:Red'],
        )
        m_red = result.combinations[0]
        self.assertEqual((m_red.total_quantity, m_red.available_quantity), (2, 0))
        self.assertEqual(m_red.status, AvailabilityStatus.UNAVAILABLE)
        self.assertEqual(m_red.selected_attributes, {'size': 'M', 'color': 'Red'})
        self.assertEqual(result.total_quantity, 5)
        self.assertEqual(result.available_quantity, 3)
        self.assertEqual(result.status, AvailabilityStatus.LIMITED)

    def test_tracked_reservation_on_vanished_combination(self):
        """Test reservations on a combination without live units still reduce product stock."""
        bike = tracked_product()
        units = units_for('bike', {('M', 'Red'): 2})
        reserved = {('bike', 'size:XL|color:Red'): 1}

        result = services.resolve_product_availability(bike, units, reserved)

        self.assertEqual([c.combination_key for c in result.combinations], ['size:M|color:Red'])
        self.assertEqual(result.combinations[0].available_quantity, 2)
        self.assertEqual(result.reserved_quantity, 1)
        self.assertEqual(result.available_quantity, 1)

    def test_tracked_without_units(self):
        """Test a tracked product without live units is unavailable."""
        result = services.resolve_product_availability(tracked_product(), [], {})
        self.assertEqual(result.combinations, [])
        self.assertEqual(result.status, AvailabilityStatus.UNAVAILABLE)


class StorefrontAvailabilityTest(SimpleTestCase):
    """Test the storefront availability response."""

    def test_response_with_validations(self):
        """Test products, period and advance-notice validation are returned."""
        store = StoreSettingsDTO(store_id='s', advance_notice_minutes=60 * 24 * 30)
        tent = ProductDTO(id='tent', total_quantity=5)
        reservations = [make_reservation([item('tent', 3)])]

        response = services.get_storefront_availability(
            store, [tent], [], reservations, WINDOW_START, WINDOW_END,
            now=WINDOW_START - timedelta(days=1),
        )

        self.assertEqual(response.products[0].available_quantity, 2)
        self.assertEqual((response.period_start, response.period_end), (WINDOW_START, WINDOW_END))
        self.assertIsNone(response.business_hours_validation)
        self.assertFalse(response.advance_notice_validation.valid)
        self.assertEqual(response.advance_notice_validation.advance_notice_minutes, 60 * 24 * 30)

    def test_pending_ignored_when_store_opts_out(self):
        """Test the store's blocking statuses are applied."""
        store = StoreSettingsDTO(store_id='s', pending_blocks_availability=False)
        tent = ProductDTO(id='tent', total_quantity=5)
        reservations = [make_reservation([item('tent', 3)], status=ReservationStatus.PENDING)]

        response = services.get_storefront_availability(store, [tent], [], reservations, WINDOW_START, WINDOW_END)

        self.assertEqual(response.products[0].available_quantity, 5)
        self.assertIsNone(response.advance_notice_validation)
