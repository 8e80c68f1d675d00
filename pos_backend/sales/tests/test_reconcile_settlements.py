# sales/tests/test_reconcile_settlements.py

from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from billing.models import AccountsReceivable, Invoice
from sales.models import Sale, SaleSettlement
from sales.services.refund_orchestrator import process_return
from sales.services.refund_request import RefundRequest, RefundRequestItem
from sales.testing import make_product, make_scope, make_sale, make_user


class ReconcileSettlementsCommandTests(TestCase):
    """
    reconcile_settlements management command.

    GUARANTEES:
    - interrupted (stale) in_progress settlements are surfaced
    - --repair aligns sale / invoice / receivable to the lowest balance
    - --strict fails while issues remain
    """

    def setUp(self):
        self.org, self.branch = make_scope()
        self.cashier = make_user(self.org, self.branch)
        self.product = make_product(self.org, name="Zapatos", price="100.00")
        self.sale, self.items, self.invoice = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.product, 2, "100.00")],
            balance="200.00",
            with_receivable=True,
        )

    def _run(self, *args):
        out, err = StringIO(), StringIO()
        call_command("reconcile_settlements", *args, stdout=out, stderr=err)
        return out.getvalue(), err.getvalue()

    def _partial_with_invoice_failure(self):
        request = RefundRequest(
            items=[
                RefundRequestItem(
                    sale_item_id=str(self.items[0].id),
                    return_quantity=1,
                    refund_amount=Decimal("100.00"),
                    reason="defective",
                )
            ],
            refund_method="cash",
            reason="Customer return",
        )
        with mock.patch(
            "sales.services.partial_settlement._reduce_invoice_balance",
            side_effect=DatabaseError("invoice row locked"),
        ):
            return process_return(self.sale.id, request, self.cashier)

    def test_clean_run(self):
        out, err = self._run("--strict")

        self.assertIn("RECONCILIATION CLEAN", out)
        self.assertEqual(err, "")

    def test_reports_drift_and_fails_strict(self):
        outcome = self._partial_with_invoice_failure()

        out, err = self._run()
        self.assertIn(str(outcome.settlement.id), out)
        self.assertIn("failed step: invoice_balance", out)
        self.assertIn("sale balance 100.00 != invoice balance 200.00", err)

        with self.assertRaises(CommandError):
            self._run("--strict")

    def test_repair_aligns_balances_to_lowest(self):
        outcome = self._partial_with_invoice_failure()

        out, _ = self._run("--repair", "--strict")
        self.assertIn("Repaired: 1", out)

        self.sale.refresh_from_db()
        self.invoice.refresh_from_db()
        receivable = AccountsReceivable.objects.get(invoice=self.invoice)

        self.assertEqual(self.sale.balance, Decimal("100.00"))
        self.assertEqual(self.invoice.balance, Decimal("100.00"))
        self.assertEqual(self.invoice.status, Invoice.Status.PARTIAL)
        self.assertEqual(receivable.balance, Decimal("100.00"))

        settlement = SaleSettlement.objects.get(pk=outcome.settlement.pk)
        self.assertEqual(settlement.status, SaleSettlement.Status.RECONCILED)
        self.assertIsNotNone(settlement.finished_at)

    def test_repair_finishes_interrupted_full_void(self):
        settlement = SaleSettlement.objects.create(
            organization=self.org,
            sale=self.sale,
            kind=SaleSettlement.Kind.FULL,
            status=SaleSettlement.Status.NEEDS_RECONCILIATION,
        )
        Invoice.objects.filter(pk=self.invoice.pk).update(
            balance=Decimal("0.00"), status=Invoice.Status.PAID
        )

        self._run("--repair")

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.balance, Decimal("0.00"))
        self.assertEqual(self.sale.status, Sale.STATUS_VOID)
        settlement.refresh_from_db()
        self.assertEqual(settlement.status, SaleSettlement.Status.RECONCILED)

    def test_stale_in_progress_is_promoted(self):
        stale = SaleSettlement.objects.create(organization=self.org, sale=self.sale)
        SaleSettlement.objects.filter(pk=stale.pk).update(
            created_at=timezone.now() - timedelta(hours=1)
        )

        out, _ = self._run("--stale-minutes", "15")

        stale.refresh_from_db()
        self.assertEqual(stale.status, SaleSettlement.Status.NEEDS_RECONCILIATION)
        self.assertIn("Stale in_progress settlements promoted: 1", out)

    def test_fresh_in_progress_is_left_alone(self):
        fresh = SaleSettlement.objects.create(organization=self.org, sale=self.sale)

        self._run()

        fresh.refresh_from_db()
        self.assertEqual(fresh.status, SaleSettlement.Status.IN_PROGRESS)
