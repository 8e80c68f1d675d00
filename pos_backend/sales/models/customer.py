# sales/models/customer.py

import uuid

from django.db import models


class Customer(models.Model):
    """
    Organization-scoped customer reference (used by sale search and
    by invoices / receivables / credit notes).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="customers",
    )

    name = models.CharField(max_length=255, db_index=True)
    document_number = models.CharField(max_length=64, blank=True)
    phone = models.CharField(max_length=50, blank=True, db_index=True)
    email = models.EmailField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
