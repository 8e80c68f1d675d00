# sales/models/sale.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Sale(models.Model):
    """
    Represents a completed POS transaction (root of the returns ledger).

    GUARANTEES:
    - Financial totals (subtotal / tax_total / total) are immutable
    - balance never increases and never goes below zero
    - status "void" is terminal (reached by a full return)
    - returned quantities are derived from processed SaleReturns, never stored
    """

    STATUS_OPEN = "open"
    STATUS_PAID = "paid"
    STATUS_VOID = "void"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_PAID, "Paid"),
        (STATUS_VOID, "Void"),
    ]

    STATUS_ENUM = {
        STATUS_OPEN: {"label": "Open", "terminal": False, "refundable": True},
        STATUS_PAID: {"label": "Paid", "terminal": False, "refundable": True},
        STATUS_VOID: {"label": "Void", "terminal": True, "refundable": False},
    }

    PAYMENT_PENDING = "pending"
    PAYMENT_PARTIAL = "partial"
    PAYMENT_PAID = "paid"
    PAYMENT_REFUNDED = "refunded"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PARTIAL, "Partial"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_REFUNDED, "Refunded"),
    ]

    @classmethod
    def get_status_enum(cls):
        return cls.STATUS_ENUM

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="sales",
    )
    branch = models.ForeignKey(
        "organizations.Branch",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sales",
    )
    customer = models.ForeignKey(
        "sales.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sales",
        help_text="Cashier / staff who processed the sale",
    )

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    payment_method = models.CharField(
        max_length=32,
        default="cash",
        help_text="cash/card/transfer/credit",
    )

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PAID,
        db_index=True,
    )
    payment_status = models.CharField(
        max_length=16,
        choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_PAID,
    )

    sale_date = models.DateTimeField(default=timezone.now, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-sale_date"]
        indexes = [
            models.Index(fields=["organization", "sale_date"], name="sale_org_date_idx"),
            models.Index(fields=["status"], name="sale_status_idx"),
        ]

    _IMMUTABLE_FIELDS = (
        "organization_id",
        "subtotal",
        "tax_total",
        "total",
        "sale_date",
    )

    def _validate_immutable(self, previous: "Sale"):
        if previous.status == self.STATUS_VOID and self.status != self.STATUS_VOID:
            raise ValueError("Sale is void; status cannot change.")

        for field in self._IMMUTABLE_FIELDS:
            if getattr(self, field) != getattr(previous, field):
                raise ValueError(f"Sale field '{field}' cannot be changed.")

        if Decimal(self.balance) > Decimal(previous.balance):
            raise ValueError(
                f"Sale balance cannot increase ({previous.balance} -> {self.balance})."
            )

    def save(self, *args, **kwargs):
        if Decimal(self.balance or 0) < Decimal("0.00"):
            raise ValueError("Sale balance cannot be negative.")

        if self.pk and not self._state.adding:
            previous = Sale.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)

        super().save(*args, **kwargs)

    @property
    def short_reference(self) -> str:
        return str(self.id).replace("-", "")[-8:]

    def __str__(self):
        return f"Sale {self.short_reference} | {self.total}"
