# sales/tests/test_refund_validator.py

import uuid
from decimal import Decimal

from django.test import TestCase

from sales.services.exceptions import ReturnValidationError
from sales.services.ledger_reader import read_sale_ledger
from sales.services.refund_request import RefundRequest, RefundRequestItem
from sales.services.refund_validator import validate_refund_request
from sales.testing import make_product, make_scope, make_sale, make_user


class RefundValidatorTests(TestCase):
    """
    Request validation.

    GUARANTEES:
    - every rule violation is reported (not just the first)
    - duplicate lines are aggregated before the quantity ceiling applies
    - a line never refunds more than was paid for it, tax included
    """

    def setUp(self):
        self.org, self.branch = make_scope()
        self.user = make_user(self.org, self.branch)
        self.shirt = make_product(self.org, name="Camiseta", price="20.00")
        self.cap = make_product(self.org, name="Gorra", price="10.00")
        self.sale, self.items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.user,
            lines=[(self.shirt, 3, "20.00"), (self.cap, 2, "10.00")],
        )
        self.ledger = read_sale_ledger(self.sale.id, self.org)

    def _item(self, index=0, qty=1, amount="20.00", reason="defective", **extra):
        return RefundRequestItem(
            sale_item_id=str(self.items[index].id),
            return_quantity=qty,
            refund_amount=Decimal(amount),
            reason=reason,
            **extra,
        )

    def _request(self, items, **kwargs):
        kwargs.setdefault("refund_method", "cash")
        kwargs.setdefault("reason", "Customer changed mind")
        return RefundRequest(items=items, **kwargs)

    def test_valid_request_yields_lines_and_subtotal(self):
        validated = validate_refund_request(
            self._request([self._item(0, 2, "40.00"), self._item(1, 1, "10.00")]),
            self.ledger,
        )

        self.assertEqual(validated.refund_subtotal, Decimal("50.00"))
        self.assertEqual([ln.return_quantity for ln in validated.lines], [2, 1])
        self.assertEqual(validated.lines[0].product_id, str(self.shirt.id))

    def test_empty_items_rejected(self):
        with self.assertRaises(ReturnValidationError) as ctx:
            validate_refund_request(self._request([]), self.ledger)

        self.assertEqual(ctx.exception.messages, ["Select at least one item to return."])

    def test_all_violations_are_collected(self):
        request = self._request(
            [
                self._item(0, 1, "20.00", reason=""),
                RefundRequestItem(
                    sale_item_id=str(uuid.uuid4()),
                    return_quantity=1,
                    refund_amount=Decimal("5.00"),
                    reason="x",
                ),
            ],
            refund_method="bitcoin",
            reason="  ",
        )

        with self.assertRaises(ReturnValidationError) as ctx:
            validate_refund_request(request, self.ledger)

        messages = " | ".join(ctx.exception.messages)
        self.assertEqual(len(ctx.exception.messages), 4)
        self.assertIn("return reason is required", messages)
        self.assertIn("Invalid refund method", messages)
        self.assertIn("a reason is required for 'Camiseta'", messages)
        self.assertIn("does not belong to this sale", messages)

    def test_quantity_and_amount_bounds(self):
        with self.assertRaises(ReturnValidationError) as ctx:
            validate_refund_request(
                self._request([self._item(0, 0, "20.00"), self._item(1, 1, "-1.00")]),
                self.ledger,
            )

        messages = " | ".join(ctx.exception.messages)
        self.assertIn("return quantity must be an integer >= 1", messages)
        self.assertIn("refund amount must be a number >= 0", messages)

    def test_fractional_quantity_rejected(self):
        with self.assertRaises(ReturnValidationError):
            validate_refund_request(
                self._request([self._item(0, Decimal("1.5"), "30.00")]), self.ledger
            )

    def test_duplicate_lines_are_aggregated_before_ceiling(self):
        # 2 + 2 of 3 sold
        with self.assertRaises(ReturnValidationError) as ctx:
            validate_refund_request(
                self._request([self._item(0, 2, "40.00"), self._item(0, 2, "40.00")]),
                self.ledger,
            )

        self.assertIn("Cannot return 4 of 'Camiseta'", ctx.exception.messages[0])

    def test_duplicate_lines_within_ceiling_merge(self):
        validated = validate_refund_request(
            self._request([self._item(0, 1, "20.00"), self._item(0, 2, "40.00")]),
            self.ledger,
        )

        self.assertEqual(len(validated.lines), 1)
        self.assertEqual(validated.lines[0].return_quantity, 3)
        self.assertEqual(validated.lines[0].refund_amount, Decimal("60.00"))

    def test_product_mismatch_rejected(self):
        with self.assertRaises(ReturnValidationError) as ctx:
            validate_refund_request(
                self._request([self._item(0, 1, "20.00", product_id=str(self.cap.id))]),
                self.ledger,
            )

        self.assertIn("product does not match", ctx.exception.messages[0])

    def test_declared_total_must_match_items(self):
        with self.assertRaises(ReturnValidationError) as ctx:
            validate_refund_request(
                self._request([self._item(0, 1, "20.00")], total_refund=Decimal("25.00")),
                self.ledger,
            )
        self.assertIn("does not match", ctx.exception.messages[0])

        validated = validate_refund_request(
            self._request([self._item(0, 1, "20.00")], total_refund=Decimal("20.00")),
            self.ledger,
        )
        self.assertEqual(validated.refund_subtotal, Decimal("20.00"))

    def test_zero_amount_line_is_allowed(self):
        validated = validate_refund_request(
            self._request([self._item(1, 1, "0.00")]), self.ledger
        )
        self.assertEqual(validated.refund_subtotal, Decimal("0.00"))

    def test_refund_amount_capped_at_paid_value(self):
        with self.assertRaises(ReturnValidationError) as ctx:
            validate_refund_request(self._request([self._item(0, 1, "25.00")]), self.ledger)

        self.assertIn("exceeds the 20.00 paid", ctx.exception.messages[0])

        # duplicate lines are capped on the merged quantity
        validated = validate_refund_request(
            self._request([self._item(0, 1, "25.00"), self._item(0, 1, "15.00")]),
            self.ledger,
        )
        self.assertEqual(validated.refund_subtotal, Decimal("40.00"))

    def test_refund_cap_includes_tax_share(self):
        sale, items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.user,
            lines=[(self.shirt, 1, "84.03")],
            tax_total="15.97",
        )
        ledger = read_sale_ledger(sale.id, self.org)

        def request(amount):
            return self._request(
                [
                    RefundRequestItem(
                        sale_item_id=str(items[0].id),
                        return_quantity=1,
                        refund_amount=Decimal(amount),
                        reason="defective",
                    )
                ]
            )

        validated = validate_refund_request(request("100.00"), ledger)
        self.assertEqual(validated.refund_subtotal, Decimal("100.00"))

        with self.assertRaises(ReturnValidationError):
            validate_refund_request(request("100.05"), ledger)
