# billing/models/invoice_item.py

import uuid
from decimal import Decimal

from django.db import models

from .invoice import Invoice


class InvoiceItem(models.Model):
    """
    Invoice line.

    qty / total_line / discount_amount are SIGNED: credit-note documents
    mirror the reversed lines with negative values, unit_price and tax_rate
    stay as on the source line.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoice_items",
    )

    description = models.CharField(max_length=255, blank=True)

    qty = models.DecimalField(max_digits=12, decimal_places=2)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_line = models.DecimalField(max_digits=12, decimal_places=2)

    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax_included = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.description or self.product_id} x {self.qty}"
