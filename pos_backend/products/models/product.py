# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    Represents a sellable product.

    STOCK MODEL:
    - stock_quantity is the on-hand figure, service-managed only
    - every change to it is mirrored by an immutable StockMovement row
    - sale lines snapshot name/price; Product is display data for returns
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="products",
    )

    sku = models.CharField(max_length=128, db_index=True, blank=True)
    name = models.CharField(max_length=255, db_index=True)

    # Current/default selling price
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Percent (e.g. 19.00).",
    )

    stock_quantity = models.IntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["organization", "sku"], name="product_org_sku_idx"),
            models.Index(fields=["name"], name="product_name_idx"),
        ]

    def __str__(self):
        if self.sku:
            return f"{self.name} ({self.sku})"
        return self.name

    def clean(self):
        if self.unit_price is None or Decimal(self.unit_price) < 0:
            raise ValidationError("Unit price cannot be negative")

        if self.tax_rate is None or Decimal(self.tax_rate) < 0:
            raise ValidationError("tax_rate cannot be negative")
