# sales/tests/test_ledger_reader.py

import uuid
from decimal import Decimal

from django.test import TestCase

from billing.models import Invoice
from sales.models import SaleReturn
from sales.services.exceptions import SaleNotFound
from sales.services.ledger_reader import (
    MISSING_PRODUCT_NAME,
    read_sale_ledger,
    returned_quantities_for_sale,
)
from sales.testing import make_product, make_scope, make_sale, make_user


class SaleLedgerReaderTests(TestCase):
    """
    Ledger reads.

    GUARANTEES:
    - returned quantities are derived from PROCESSED returns only
    - reads are scoped by organization
    - a missing product never fails the read
    """

    def setUp(self):
        self.org, self.branch = make_scope()
        self.user = make_user(self.org, self.branch)
        self.shirt = make_product(self.org, name="Camiseta", sku="CAM-01", price="20.00")
        self.sale, self.items, self.invoice = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.user,
            lines=[(self.shirt, 5, "20.00")],
        )

    def _return(self, qty, *, status=SaleReturn.STATUS_PROCESSED, key="sale_item_id"):
        return SaleReturn.objects.create(
            organization=self.org,
            sale=self.sale,
            user=self.user,
            total_refund=Decimal("20.00") * qty,
            reason="defective",
            refund_method=SaleReturn.METHOD_CASH,
            status=status,
            return_items=[{key: str(self.items[0].id), "return_quantity": qty}],
        )

    def test_reads_items_payments_and_invoice_number(self):
        ledger = read_sale_ledger(self.sale.id, self.org)

        self.assertEqual(ledger.sale.pk, self.sale.pk)
        self.assertEqual(len(ledger.items), 1)
        self.assertEqual(ledger.items[0].product_name, "Camiseta")
        self.assertEqual(ledger.items[0].sku, "CAM-01")
        self.assertEqual(ledger.items[0].quantity, 5)
        self.assertEqual(ledger.items[0].returnable_quantity, 5)
        self.assertEqual(len(ledger.payments), 1)
        self.assertEqual(ledger.payments[0].amount, Decimal("100.00"))
        self.assertEqual(ledger.invoice_number, self.invoice.number)
        self.assertEqual(ledger.notes, [])

    def test_returned_quantity_sums_processed_returns_only(self):
        self._return(2)
        self._return(1, key="id")
        self._return(2, status=SaleReturn.STATUS_CANCELLED)
        self._return(1, status=SaleReturn.STATUS_PENDING)

        returned = returned_quantities_for_sale(sale=self.sale)
        self.assertEqual(returned, {str(self.items[0].id): 3})

        ledger = read_sale_ledger(self.sale.id, self.org)
        item = ledger.item(self.items[0].id)
        self.assertEqual(item.returned_quantity, 3)
        self.assertEqual(item.returnable_quantity, 2)

    def test_missing_product_gets_placeholder_and_note(self):
        sale, items, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.user,
            lines=[(None, 1, "10.00")],
        )

        ledger = read_sale_ledger(sale.id, self.org)

        self.assertEqual(ledger.items[0].product_name, MISSING_PRODUCT_NAME)
        self.assertIsNone(ledger.items[0].product_id)
        self.assertEqual(len(ledger.notes), 1)

    def test_sale_of_another_organization_is_not_found(self):
        other_org, _ = make_scope("Otra Tienda")

        with self.assertRaises(SaleNotFound):
            read_sale_ledger(self.sale.id, other_org)

    def test_unknown_or_malformed_id_is_not_found(self):
        with self.assertRaises(SaleNotFound):
            read_sale_ledger(uuid.uuid4(), self.org)

        with self.assertRaises(SaleNotFound):
            read_sale_ledger("not-a-uuid", self.org)

    def test_no_organization_is_not_found(self):
        with self.assertRaises(SaleNotFound):
            read_sale_ledger(self.sale.id, None)

    def test_legacy_invoice_without_document_type_is_found(self):
        sale, _, invoice = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.user,
            lines=[(self.shirt, 1, "20.00")],
            invoice_document_type=None,
        )

        ledger = read_sale_ledger(sale.id, self.org)
        self.assertEqual(ledger.invoice_number, invoice.number)

    def test_credit_note_document_is_not_the_original_invoice(self):
        sale, _, _ = make_sale(
            organization=self.org,
            branch=self.branch,
            user=self.user,
            lines=[(self.shirt, 1, "20.00")],
            with_invoice=False,
        )
        Invoice.objects.create(
            organization=self.org,
            sale=sale,
            number="NC-000099",
            document_type=Invoice.DocumentType.CREDIT_NOTE,
            total=Decimal("-20.00"),
        )

        ledger = read_sale_ledger(sale.id, self.org)
        self.assertIsNone(ledger.invoice_number)
