# sales/models/sale_return.py

"""
======================================================
PATH: sales/models/sale_return.py
======================================================
SALE RETURN (AUDIT RECORD)

Purpose:
- The auditable record of one processed return against a sale.
- return_items is the authoritative list of what came back; summing it over
  all PROCESSED returns of a sale gives the returned quantity per sale item.

Design guarantees:
- Created once, never updated, never deleted
- Many returns per sale (each one a separate partial or full return)
- return_items keeps request order:
    [{sale_item_id, product_id, return_quantity, refund_amount, reason}, ...]
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class SaleReturn(models.Model):
    STATUS_PENDING = "pending"
    STATUS_PROCESSED = "processed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSED, "Processed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    METHOD_CASH = "cash"
    METHOD_CREDIT_NOTE = "credit_note"
    METHOD_ORIGINAL = "original_method"

    REFUND_METHOD_CHOICES = [
        (METHOD_CASH, "Cash"),
        (METHOD_CREDIT_NOTE, "Credit note"),
        (METHOD_ORIGINAL, "Original payment method"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="sale_returns",
    )
    branch = models.ForeignKey(
        "organizations.Branch",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sale_returns",
    )
    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.PROTECT,
        related_name="returns",
    )
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sale_returns",
    )

    total_refund = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Refund subtotal (sum of item refund amounts, tax excluded).",
    )

    reason = models.TextField()
    notes = models.TextField(blank=True)

    refund_method = models.CharField(max_length=20, choices=REFUND_METHOD_CHOICES)

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PROCESSED,
        db_index=True,
    )

    return_items = models.JSONField(default=list)

    return_date = models.DateTimeField(default=timezone.now, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-return_date"]
        indexes = [
            models.Index(fields=["organization", "return_date"], name="salereturn_org_date_idx"),
            models.Index(fields=["sale", "status"], name="salereturn_sale_status_idx"),
        ]

    def clean(self):
        if not (self.reason or "").strip():
            raise ValidationError({"reason": "reason is required"})

        if not isinstance(self.return_items, list) or not self.return_items:
            raise ValidationError({"return_items": "at least one item is required"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("SaleReturn records are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("SaleReturn records cannot be deleted")

    @property
    def returned_units(self) -> int:
        return sum(int(line.get("return_quantity") or 0) for line in self.return_items or [])

    def __str__(self):
        return f"Return {self.id} | sale {self.sale_id} | {self.total_refund}"
