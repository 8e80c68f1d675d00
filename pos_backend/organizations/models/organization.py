# organizations/models/organization.py

import uuid

from django.db import models


class Organization(models.Model):
    """
    Tenant boundary.

    Every sale, invoice, receivable, return and credit-note sequence belongs to
    exactly one organization. Reads are always scoped by it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)

    tax_id = models.CharField(
        max_length=64,
        blank=True,
        help_text="Fiscal identifier printed on invoices and credit notes.",
    )

    currency = models.CharField(max_length=3, default="COP")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
