# sales/tests/test_tax_and_routing.py

from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from sales.services.settlement_router import SettlementKind, classify_settlement
from sales.services.tax_calculator import split_refund_tax


class TaxSplitTests(SimpleTestCase):
    """
    Proportional tax on refunds.

    GUARANTEES:
    - tax follows the sale's effective tax ratio, half-up to cents
    - a complete refund gets the whole original tax (no rounding drift)
    """

    def test_half_of_subtotal_gets_proportional_tax(self):
        split = split_refund_tax(Decimal("100.00"), Decimal("19.00"), Decimal("50.00"))

        self.assertEqual(split.subtotal, Decimal("50.00"))
        self.assertEqual(split.tax, Decimal("9.50"))
        self.assertEqual(split.total_with_tax, Decimal("59.50"))
        self.assertFalse(split.is_complete)

    def test_complete_refund_takes_entire_original_tax(self):
        split = split_refund_tax(Decimal("33.33"), Decimal("6.33"), Decimal("33.33"))

        self.assertTrue(split.is_complete)
        self.assertEqual(split.tax, Decimal("6.33"))
        self.assertEqual(split.total_with_tax, Decimal("39.66"))

    def test_rounds_half_up_to_cents(self):
        # 0.50 * 19 / 100 = 0.095
        split = split_refund_tax(Decimal("100.00"), Decimal("19.00"), Decimal("0.50"))
        self.assertEqual(split.tax, Decimal("0.10"))

        # 33.33 * 19 / 100 = 6.3327
        split = split_refund_tax(Decimal("100.00"), Decimal("19.00"), Decimal("33.33"))
        self.assertEqual(split.tax, Decimal("6.33"))

    def test_zero_subtotal_sale_has_no_tax(self):
        split = split_refund_tax(Decimal("0.00"), Decimal("0.00"), Decimal("10.00"))

        self.assertEqual(split.tax, Decimal("0.00"))
        self.assertEqual(split.total_with_tax, Decimal("10.00"))

    def test_untaxed_sale(self):
        split = split_refund_tax(Decimal("100.00"), Decimal("0.00"), Decimal("40.00"))

        self.assertEqual(split.tax, Decimal("0.00"))
        self.assertEqual(split.total_with_tax, Decimal("40.00"))


class SettlementRoutingTests(SimpleTestCase):
    def test_refund_equal_to_total_is_full(self):
        self.assertEqual(
            classify_settlement(Decimal("100.00"), Decimal("100.00")),
            SettlementKind.FULL,
        )

    def test_refund_below_total_is_partial(self):
        self.assertEqual(
            classify_settlement(Decimal("60.00"), Decimal("100.00")),
            SettlementKind.PARTIAL,
        )

    def test_difference_below_epsilon_is_full(self):
        self.assertEqual(
            classify_settlement(Decimal("99.995"), Decimal("100.00")),
            SettlementKind.FULL,
        )

    def test_difference_of_exactly_epsilon_is_partial(self):
        self.assertEqual(
            classify_settlement(Decimal("99.99"), Decimal("100.00")),
            SettlementKind.PARTIAL,
        )

    @override_settings(RETURNS_AMOUNT_EPSILON="0.05")
    def test_epsilon_is_configurable(self):
        self.assertEqual(
            classify_settlement(Decimal("99.96"), Decimal("100.00")),
            SettlementKind.FULL,
        )

    def test_kind_serializes_as_plain_string(self):
        self.assertEqual(SettlementKind.FULL.value, "full")
        self.assertEqual(SettlementKind.PARTIAL, "partial")
