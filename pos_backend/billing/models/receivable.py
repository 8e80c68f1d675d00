# billing/models/receivable.py

import uuid
from decimal import Decimal

from django.db import models

from .invoice import Invoice


class AccountsReceivable(models.Model):
    """
    Customer-owed amount tied to one invoice.

    Mirrors the invoice balance: every settlement that moves the invoice
    balance also moves this one (see reconcile_settlements for drift).
    """

    class Status(models.TextChoices):
        CURRENT = "current", "Current"
        PAID = "paid", "Paid"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        related_name="receivables",
    )
    customer = models.ForeignKey(
        "sales.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="receivables",
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.CURRENT,
        db_index=True,
    )

    due_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Accounts receivable entry"
        verbose_name_plural = "Accounts receivable"

    def __str__(self):
        return f"AR {self.invoice_id} | {self.balance}"
