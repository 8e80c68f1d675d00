# sales/tests/test_settlement_failures.py

from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from billing.models import Invoice
from sales.models import Sale, SaleReturn, SaleSettlement
from sales.services.exceptions import AuditWriteError, SettlementWriteError
from sales.services.refund_orchestrator import process_return
from sales.services.refund_request import RefundRequest, RefundRequestItem
from sales.testing import make_product, make_scope, make_sale, make_user


class SettlementFailureTests(TestCase):
    """
    Failure handling across the settlement.

    GUARANTEES:
    - a failed credit-note document aborts the full settlement before any
      balance moves
    - a failed balance write is a warning, the return is still recorded
    - a failed return record is reported, balances stay as settled
    - side-effect failures never reach the caller
    - an unexpected error never leaves the sale locked by its claim
    """

    def setUp(self):
        self.org, self.branch = make_scope()
        self.cashier = make_user(self.org, self.branch)
        self.product = make_product(self.org, name="Chaqueta", price="60.00")
        self.sale, self.items, self.invoice = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.product, 2, "60.00")],
            balance="120.00",
            with_receivable=True,
        )

    def _request(self, qty, amount, **extra):
        return RefundRequest(
            items=[
                RefundRequestItem(
                    sale_item_id=str(self.items[0].id),
                    return_quantity=qty,
                    refund_amount=Decimal(amount),
                    reason="defective",
                    **extra,
                )
            ],
            refund_method="credit_note",
            reason="Customer return",
        )

    def test_credit_note_document_failure_is_fatal(self):
        with mock.patch(
            "sales.services.full_settlement.next_credit_note_number",
            side_effect=DatabaseError("sequence locked"),
        ):
            with self.assertRaises(SettlementWriteError):
                process_return(self.sale.id, self._request(2, "120.00"), self.cashier)

        self.invoice.refresh_from_db()
        self.sale.refresh_from_db()
        self.assertEqual(self.invoice.balance, Decimal("120.00"))
        self.assertEqual(self.sale.balance, Decimal("120.00"))
        self.assertNotEqual(self.sale.status, Sale.STATUS_VOID)
        self.assertFalse(SaleReturn.objects.exists())
        self.assertFalse(
            Invoice.objects.filter(document_type=Invoice.DocumentType.CREDIT_NOTE).exists()
        )

        settlement = SaleSettlement.objects.get(sale=self.sale)
        self.assertEqual(settlement.status, SaleSettlement.Status.FAILED)
        self.assertIn("credit_note_document", settlement.error_message)

    def test_failed_settlement_does_not_block_retry(self):
        with mock.patch(
            "sales.services.full_settlement.next_credit_note_number",
            side_effect=DatabaseError("sequence locked"),
        ):
            with self.assertRaises(SettlementWriteError):
                process_return(self.sale.id, self._request(2, "120.00"), self.cashier)

        outcome = process_return(self.sale.id, self._request(2, "120.00"), self.cashier)
        self.assertEqual(outcome.settlement.status, SaleSettlement.Status.COMPLETED)

    def test_balance_write_failure_becomes_warning(self):
        with mock.patch(
            "sales.services.partial_settlement._reduce_invoice_balance",
            side_effect=DatabaseError("invoice row locked"),
        ):
            outcome = process_return(self.sale.id, self._request(1, "60.00"), self.cashier)

        self.assertEqual(len(outcome.warnings), 1)
        self.assertIn("invoice_balance failed", outcome.warnings[0])
        self.assertTrue(SaleReturn.objects.filter(pk=outcome.sale_return.pk).exists())

        self.sale.refresh_from_db()
        self.invoice.refresh_from_db()
        self.assertEqual(self.sale.balance, Decimal("60.00"))
        self.assertEqual(self.invoice.balance, Decimal("120.00"))

        settlement = SaleSettlement.objects.get(pk=outcome.settlement.pk)
        self.assertEqual(settlement.status, SaleSettlement.Status.NEEDS_RECONCILIATION)
        self.assertEqual([s["name"] for s in settlement.failed_steps], ["invoice_balance"])

    def test_return_record_failure_raises_and_flags_settlement(self):
        with mock.patch.object(SaleReturn, "save", side_effect=DatabaseError("disk full")):
            with self.assertRaises(AuditWriteError):
                process_return(self.sale.id, self._request(1, "60.00"), self.cashier)

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.balance, Decimal("60.00"))

        settlement = SaleSettlement.objects.get(sale=self.sale)
        self.assertEqual(settlement.status, SaleSettlement.Status.NEEDS_RECONCILIATION)
        self.assertIsNone(settlement.sale_return_id)

    def test_side_effect_failure_is_swallowed_and_logged_on_checkpoint(self):
        with mock.patch(
            "sales.services.side_effects.restock_items",
            side_effect=RuntimeError("stock service down"),
        ):
            outcome = process_return(
                self.sale.id,
                self._request(1, "60.00", affects_inventory=True),
                self.cashier,
            )

        self.assertEqual(outcome.side_effects["restock"], "failed")
        self.assertEqual(outcome.side_effects["customer_credit"], "ok")
        self.assertEqual(outcome.warnings, [])

        settlement = SaleSettlement.objects.get(pk=outcome.settlement.pk)
        self.assertEqual(settlement.status, SaleSettlement.Status.COMPLETED)
        self.assertEqual(
            [s["name"] for s in settlement.failed_steps], ["side_effect:restock"]
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)

    def test_error_before_settlement_writes_releases_claim(self):
        with mock.patch(
            "sales.services.refund_orchestrator.read_sale_ledger",
            side_effect=DatabaseError("connection reset"),
        ):
            with self.assertRaises(DatabaseError):
                process_return(self.sale.id, self._request(1, "60.00"), self.cashier)

        self.assertFalse(SaleSettlement.objects.filter(sale=self.sale).exists())

        outcome = process_return(self.sale.id, self._request(1, "60.00"), self.cashier)
        self.assertEqual(outcome.settlement.status, SaleSettlement.Status.COMPLETED)

    def test_error_after_settlement_writes_flags_reconciliation(self):
        with mock.patch(
            "sales.services.refund_orchestrator.write_return_record",
            side_effect=RuntimeError("serializer crashed"),
        ):
            with self.assertRaises(RuntimeError):
                process_return(self.sale.id, self._request(1, "60.00"), self.cashier)

        settlement = SaleSettlement.objects.get(sale=self.sale)
        self.assertEqual(settlement.status, SaleSettlement.Status.NEEDS_RECONCILIATION)
        self.assertTrue(settlement.error_message.startswith("RuntimeError"))
        self.assertIsNotNone(settlement.finished_at)

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.balance, Decimal("60.00"))

        # the sale is not locked out of later returns
        outcome = process_return(self.sale.id, self._request(1, "60.00"), self.cashier)
        self.assertEqual(outcome.settlement.status, SaleSettlement.Status.COMPLETED)
