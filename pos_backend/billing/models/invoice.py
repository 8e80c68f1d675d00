# billing/models/invoice.py

"""
======================================================
PATH: billing/models/invoice.py
======================================================
INVOICE (FISCAL DOCUMENT)

One model for both sale invoices and credit-note documents.

Rules:
- document_type is nullable: legacy rows were written before the column
  existed and are treated as sale invoices by the lookup service.
- Credit-note documents carry NEGATIVE subtotal/tax_total/total and point
  at the invoice they reverse via related_invoice.
- balance is what is still owed on the document (never negative).
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class Invoice(models.Model):
    class DocumentType(models.TextChoices):
        INVOICE = "invoice", "Invoice"
        CREDIT_NOTE = "credit_note", "Credit note"

    class Status(models.TextChoices):
        ISSUED = "issued", "Issued"
        PARTIAL = "partial", "Partially paid"
        PAID = "paid", "Paid"
        VOID = "void", "Void"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    branch = models.ForeignKey(
        "organizations.Branch",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )
    customer = models.ForeignKey(
        "sales.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )
    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )

    number = models.CharField(max_length=50, db_index=True)

    document_type = models.CharField(
        max_length=20,
        choices=DocumentType.choices,
        null=True,
        blank=True,
        help_text="NULL on legacy rows (treated as a sale invoice).",
    )

    related_invoice = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="credit_notes",
        help_text="For credit-note documents: the invoice being reversed.",
    )

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ISSUED,
        db_index=True,
    )

    currency = models.CharField(max_length=3, default="COP")
    tax_included = models.BooleanField(default=False)
    payment_method = models.CharField(max_length=30, blank=True)
    description = models.TextField(blank=True)

    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["organization", "number"], name="invoice_org_number_idx"),
            models.Index(fields=["sale", "document_type"], name="invoice_sale_doctype_idx"),
            models.Index(fields=["related_invoice"], name="invoice_related_idx"),
        ]

    @property
    def is_credit_note(self) -> bool:
        return self.document_type == self.DocumentType.CREDIT_NOTE

    def __str__(self):
        return f"{self.number} | {self.total}"
