# sales/tests/test_process_return.py

from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import PermissionDenied
from django.test import TestCase
from django.utils import timezone

from billing.models import AccountsReceivable, CreditNote, Invoice
from pos.models import CashMovement, CashSession
from products.models import StockMovement
from sales.models import Payment, Sale, SaleReturn, SaleSettlement
from sales.services.exceptions import (
    InvoiceNotFound,
    ReturnValidationError,
    SaleNotFound,
    SettlementInProgressError,
)
from sales.services.ledger_reader import read_sale_ledger
from sales.services.refund_orchestrator import process_return
from sales.services.refund_request import RefundRequest, RefundRequestItem
from sales.services.settlement_router import SettlementKind
from sales.testing import make_product, make_reason, make_scope, make_sale, make_user


def _line(item, qty, amount, reason="defective", **extra):
    return RefundRequestItem(
        sale_item_id=str(item.id),
        return_quantity=qty,
        refund_amount=Decimal(amount),
        reason=reason,
        **extra,
    )


def _request(items, method="cash", reason="Customer return", **extra):
    return RefundRequest(items=items, refund_method=method, reason=reason, **extra)


class ProcessReturnTestBase(TestCase):
    def setUp(self):
        self.org, self.branch = make_scope()
        self.cashier = make_user(self.org, self.branch, role="cashier")
        self.shirt = make_product(self.org, name="Camiseta", price="50.00", stock=10)
        self.cap = make_product(self.org, name="Gorra", price="20.00", stock=4)


class FullReturnTests(ProcessReturnTestBase):
    """
    Full return (refund subtotal equals the sale total).

    GUARANTEES:
    - credit-note document mirrors the original invoice with negated amounts
    - invoice, sale and receivable are settled to zero
    - the sale ends void and takes no more returns
    """

    def setUp(self):
        super().setUp()
        self.sale, self.items, self.invoice = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.shirt, 2, "50.00")],
            balance="100.00",
            payment_method="credit",
            with_receivable=True,
        )

    def test_full_return_voids_sale_and_issues_credit_note(self):
        outcome = process_return(
            self.sale.id,
            _request([_line(self.items[0], 2, "100.00")], method="credit_note", type="full"),
            self.cashier,
        )

        self.assertEqual(outcome.kind, SettlementKind.FULL)
        self.assertEqual(outcome.settlement_amount, Decimal("100.00"))
        self.assertEqual(outcome.warnings, [])

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance, Decimal("0.00"))
        self.assertEqual(self.invoice.status, Invoice.Status.PAID)

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.status, Sale.STATUS_VOID)
        self.assertEqual(self.sale.payment_status, Sale.PAYMENT_REFUNDED)
        self.assertEqual(self.sale.balance, Decimal("0.00"))

        receivable = AccountsReceivable.objects.get(invoice=self.invoice)
        self.assertEqual(receivable.balance, Decimal("0.00"))
        self.assertEqual(receivable.status, AccountsReceivable.Status.PAID)

        document = outcome.credit_note_document
        self.assertIsNotNone(document)
        self.assertEqual(document.document_type, Invoice.DocumentType.CREDIT_NOTE)
        self.assertEqual(document.total, Decimal("-100.00"))
        self.assertEqual(document.related_invoice_id, self.invoice.id)
        self.assertEqual(document.number, "NC-000001")
        self.assertEqual(
            [(i.qty, i.total_line) for i in document.items.all()],
            [(Decimal("-2.00"), Decimal("-100.00"))],
        )

        # full path issues the document only, never a store credit
        self.assertEqual(CreditNote.objects.count(), 0)

        settlement = SaleSettlement.objects.get(pk=outcome.settlement.pk)
        self.assertEqual(settlement.status, SaleSettlement.Status.COMPLETED)
        self.assertEqual(settlement.sale_return_id, outcome.sale_return.id)
        self.assertEqual(
            [s["name"] for s in settlement.steps[:5]],
            [
                "credit_note_document",
                "invoice_balance",
                "sale_balance",
                "receivable_balance",
                "sale_void",
            ],
        )

    def test_full_return_of_taxed_sale_matches_tax_inclusive_total(self):
        # subtotal 84.03 + tax 15.97 = 100.00
        sale, items, invoice = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.cap, 1, "84.03")],
            tax_total="15.97",
            balance="100.00",
            payment_method="credit",
        )

        outcome = process_return(
            sale.id,
            _request([_line(items[0], 1, "100.00")], method="credit_note", type="full"),
            self.cashier,
        )

        self.assertEqual(outcome.kind, SettlementKind.FULL)
        self.assertEqual(outcome.settlement_amount, Decimal("100.00"))
        self.assertEqual(outcome.credit_note_document.total, Decimal("-100.00"))

        invoice.refresh_from_db()
        self.assertEqual(invoice.balance, Decimal("0.00"))
        self.assertEqual(invoice.status, Invoice.Status.PAID)

        sale.refresh_from_db()
        self.assertEqual(sale.status, Sale.STATUS_VOID)
        self.assertEqual(sale.balance, Decimal("0.00"))

    def test_void_sale_rejects_further_returns(self):
        process_return(
            self.sale.id,
            _request([_line(self.items[0], 2, "100.00")], method="credit_note"),
            self.cashier,
        )

        with self.assertRaises(ReturnValidationError):
            process_return(
                self.sale.id,
                _request([_line(self.items[0], 1, "50.00")]),
                self.cashier,
            )

    def test_full_return_without_invoice_fails_before_any_write(self):
        sale, items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.cap, 1, "20.00")],
            with_invoice=False,
        )

        with self.assertRaises(InvoiceNotFound):
            process_return(sale.id, _request([_line(items[0], 1, "20.00")]), self.cashier)

        sale.refresh_from_db()
        self.assertEqual(sale.status, Sale.STATUS_PAID)
        self.assertFalse(SaleReturn.objects.filter(sale=sale).exists())
        self.assertEqual(
            SaleSettlement.objects.get(sale=sale).status, SaleSettlement.Status.FAILED
        )

    def test_full_return_with_cash_pays_out_sale_total(self):
        session = CashSession.objects.create(
            organization=self.org, branch=self.branch, opened_by=self.cashier
        )

        process_return(
            self.sale.id,
            _request([_line(self.items[0], 2, "100.00")], method="cash"),
            self.cashier,
        )

        movement = CashMovement.objects.get(session=session)
        self.assertEqual(movement.movement_type, CashMovement.TYPE_OUT)
        self.assertEqual(movement.amount, Decimal("100.00"))


class PartialReturnTests(ProcessReturnTestBase):
    """
    Partial return.

    GUARANTEES:
    - balances drop by the refund-with-tax amount, never below zero
    - cash refunds leave one "out" movement on the open session
    - credit_note refunds create a store credit with an expiry horizon
    """

    def setUp(self):
        super().setUp()
        # subtotal 100, tax 19, total 119, owed in full
        self.sale, self.items, self.invoice = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.shirt, 2, "50.00")],
            tax_total="19.00",
            balance="119.00",
            payment_method="credit",
            with_receivable=True,
        )
        self.session = CashSession.objects.create(
            organization=self.org, branch=self.branch, opened_by=self.cashier
        )

    def test_partial_cash_refund(self):
        outcome = process_return(
            self.sale.id,
            _request([_line(self.items[0], 1, "50.00")], method="cash"),
            self.cashier,
        )

        self.assertEqual(outcome.kind, SettlementKind.PARTIAL)
        self.assertEqual(outcome.tax_split.tax, Decimal("9.50"))
        self.assertEqual(outcome.settlement_amount, Decimal("59.50"))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance, Decimal("59.50"))
        self.assertEqual(self.invoice.status, Invoice.Status.PARTIAL)

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.balance, Decimal("59.50"))
        self.assertEqual(self.sale.status, Sale.STATUS_OPEN)

        receivable = AccountsReceivable.objects.get(invoice=self.invoice)
        self.assertEqual(receivable.balance, Decimal("59.50"))
        self.assertEqual(receivable.status, AccountsReceivable.Status.CURRENT)

        movements = CashMovement.objects.filter(session=self.session)
        self.assertEqual(movements.count(), 1)
        self.assertEqual(movements[0].movement_type, CashMovement.TYPE_OUT)
        self.assertEqual(movements[0].amount, Decimal("59.50"))

        refund = Payment.objects.get(sale=self.sale, amount__lt=0)
        self.assertEqual(refund.amount, Decimal("-59.50"))
        self.assertEqual(refund.method, "cash")
        self.assertEqual(refund.reference, f"Refund-{str(self.sale.id)[-8:]}")

        self.assertEqual(CreditNote.objects.count(), 0)
        self.assertFalse(
            Invoice.objects.filter(document_type=Invoice.DocumentType.CREDIT_NOTE).exists()
        )

        sale_return = outcome.sale_return
        self.assertEqual(sale_return.status, SaleReturn.STATUS_PROCESSED)
        self.assertEqual(sale_return.total_refund, Decimal("50.00"))
        self.assertEqual(sale_return.return_items[0]["return_quantity"], 1)
        self.assertEqual(outcome.settlement.status, SaleSettlement.Status.COMPLETED)

    def test_partial_credit_note_refund_creates_store_credit(self):
        outcome = process_return(
            self.sale.id,
            _request([_line(self.items[0], 1, "50.00")], method="credit_note"),
            self.cashier,
        )

        credit = outcome.customer_credit
        self.assertIsNotNone(credit)
        self.assertEqual(credit.amount, Decimal("59.50"))
        self.assertEqual(credit.balance, Decimal("59.50"))
        self.assertEqual(credit.status, CreditNote.Status.ACTIVE)
        self.assertEqual(credit.expiry_date, timezone.localdate() + timedelta(days=365))

        document = credit.invoice
        self.assertEqual(document.document_type, Invoice.DocumentType.CREDIT_NOTE)
        self.assertEqual(document.total, Decimal("-59.50"))
        self.assertEqual(document.tax_total, Decimal("-9.50"))
        self.assertEqual(document.balance, Decimal("59.50"))
        self.assertEqual(document.related_invoice_id, self.invoice.id)

        self.assertFalse(CashMovement.objects.exists())
        self.assertFalse(Payment.objects.filter(amount__lt=0).exists())

    def test_original_method_refund_uses_sale_payment_method(self):
        process_return(
            self.sale.id,
            _request([_line(self.items[0], 1, "50.00")], method="original_method"),
            self.cashier,
        )

        refund = Payment.objects.get(sale=self.sale, amount__lt=0)
        self.assertEqual(refund.method, "credit")

    def test_no_open_session_still_records_refund_payment(self):
        self.session.status = CashSession.STATUS_CLOSED
        self.session.save(update_fields=["status"])

        outcome = process_return(
            self.sale.id,
            _request([_line(self.items[0], 1, "50.00")], method="cash"),
            self.cashier,
        )

        self.assertFalse(CashMovement.objects.exists())
        self.assertTrue(Payment.objects.filter(sale=self.sale, amount__lt=0).exists())
        self.assertEqual(outcome.side_effects["refund_payout"], "ok")

    def test_balances_clamp_at_zero(self):
        sale, items, invoice = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.shirt, 2, "50.00")],
            tax_total="19.00",
            balance="10.00",
            with_receivable=True,
        )

        process_return(sale.id, _request([_line(items[0], 1, "50.00")]), self.cashier)

        sale.refresh_from_db()
        invoice.refresh_from_db()
        self.assertEqual(sale.balance, Decimal("0.00"))
        self.assertEqual(invoice.balance, Decimal("0.00"))
        self.assertEqual(invoice.status, Invoice.Status.PAID)

    def test_partial_without_invoice_skips_invoice_steps(self):
        sale, items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.cap, 2, "20.00")],
            with_invoice=False,
        )

        outcome = process_return(sale.id, _request([_line(items[0], 1, "20.00")]), self.cashier)

        steps = {s["name"]: s["outcome"] for s in outcome.settlement.steps}
        self.assertEqual(steps["invoice_balance"], "skipped")
        self.assertEqual(steps["receivable_balance"], "skipped")
        self.assertEqual(outcome.settlement.status, SaleSettlement.Status.COMPLETED)


class ReturnedQuantityTests(ProcessReturnTestBase):
    """
    Double-refund prevention.

    GUARANTEES:
    - returned quantity per item never exceeds sold quantity
    - the returned figure equals the sum over processed returns
    """

    def setUp(self):
        super().setUp()
        self.sale, self.items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.shirt, 5, "20.00")],
            with_invoice=False,
        )

    def test_second_return_cannot_exceed_remaining_quantity(self):
        process_return(self.sale.id, _request([_line(self.items[0], 3, "60.00")]), self.cashier)

        with self.assertRaises(ReturnValidationError) as ctx:
            process_return(
                self.sale.id, _request([_line(self.items[0], 3, "60.00")]), self.cashier
            )
        self.assertIn("available 2", ctx.exception.messages[0])

        process_return(self.sale.id, _request([_line(self.items[0], 2, "40.00")]), self.cashier)

        ledger = read_sale_ledger(self.sale.id, self.org)
        self.assertEqual(ledger.item(self.items[0].id).returned_quantity, 5)
        self.assertEqual(ledger.item(self.items[0].id).returnable_quantity, 0)
        self.assertEqual(SaleReturn.objects.filter(sale=self.sale).count(), 2)

    def test_rejected_request_writes_nothing_and_releases_claim(self):
        with self.assertRaises(ReturnValidationError):
            process_return(
                self.sale.id, _request([_line(self.items[0], 6, "120.00")]), self.cashier
            )

        self.assertFalse(SaleReturn.objects.filter(sale=self.sale).exists())
        self.assertFalse(SaleSettlement.objects.filter(sale=self.sale).exists())
        self.assertFalse(Payment.objects.filter(amount__lt=0).exists())


class RestockTests(ProcessReturnTestBase):
    """
    Restock on return: explicit flag > line reason catalog > top reason > no restock.
    """

    def setUp(self):
        super().setUp()
        make_reason(self.org, code="wrong_size", affects_inventory=True)
        make_reason(self.org, code="defective", affects_inventory=False)
        self.sale, self.items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.shirt, 2, "50.00"), (self.cap, 2, "20.00")],
            with_invoice=False,
        )

    def test_catalog_reason_decides_restock(self):
        outcome = process_return(
            self.sale.id,
            _request(
                [
                    _line(self.items[0], 1, "50.00", reason="wrong_size"),
                    _line(self.items[1], 1, "20.00", reason="defective"),
                ]
            ),
            self.cashier,
        )

        self.shirt.refresh_from_db()
        self.cap.refresh_from_db()
        self.assertEqual(self.shirt.stock_quantity, 11)
        self.assertEqual(self.cap.stock_quantity, 4)

        movement = StockMovement.objects.get(sale_return=outcome.sale_return)
        self.assertEqual(movement.reason, StockMovement.Reason.RETURN)
        self.assertEqual(movement.product_id, self.shirt.id)
        self.assertEqual(movement.quantity, 1)

    def test_explicit_flag_overrides_catalog(self):
        process_return(
            self.sale.id,
            _request([_line(self.items[1], 2, "40.00", reason="defective", affects_inventory=True)]),
            self.cashier,
        )

        self.cap.refresh_from_db()
        self.assertEqual(self.cap.stock_quantity, 6)

    def test_unknown_reason_does_not_restock(self):
        outcome = process_return(
            self.sale.id,
            _request([_line(self.items[0], 1, "50.00", reason="just because")], reason="other"),
            self.cashier,
        )

        self.shirt.refresh_from_db()
        self.assertEqual(self.shirt.stock_quantity, 10)
        self.assertEqual(outcome.side_effects["restock"], "skipped")


class ProcessReturnGuardTests(ProcessReturnTestBase):
    def setUp(self):
        super().setUp()
        self.sale, self.items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.cashier,
            lines=[(self.shirt, 2, "50.00")],
        )

    def test_role_without_refund_capability_is_denied(self):
        auditor = make_user(self.org, self.branch, role="auditor")

        with self.assertRaises(PermissionDenied):
            process_return(self.sale.id, _request([_line(self.items[0], 1, "50.00")]), auditor)

        self.assertFalse(SaleSettlement.objects.exists())

    def test_sale_of_another_organization_is_not_found(self):
        other_org, other_branch = make_scope("Otra Tienda")
        outsider = make_user(other_org, other_branch, role="manager")

        with self.assertRaises(SaleNotFound):
            process_return(self.sale.id, _request([_line(self.items[0], 1, "50.00")]), outsider)

    def test_concurrent_settlement_is_rejected(self):
        SaleSettlement.objects.create(
            organization=self.org,
            sale=self.sale,
            status=SaleSettlement.Status.IN_PROGRESS,
        )

        with self.assertRaises(SettlementInProgressError):
            process_return(self.sale.id, _request([_line(self.items[0], 1, "50.00")]), self.cashier)

        self.assertFalse(SaleReturn.objects.filter(sale=self.sale).exists())

    def test_finished_settlement_does_not_block_next_return(self):
        SaleSettlement.objects.create(
            organization=self.org,
            sale=self.sale,
            status=SaleSettlement.Status.COMPLETED,
        )

        outcome = process_return(
            self.sale.id, _request([_line(self.items[0], 1, "50.00")]), self.cashier
        )
        self.assertEqual(outcome.settlement.status, SaleSettlement.Status.COMPLETED)
