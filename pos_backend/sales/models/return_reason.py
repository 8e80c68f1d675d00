# sales/models/return_reason.py

import uuid

from django.db import models


class ReturnReason(models.Model):
    """
    Reason-code catalog for returns.

    affects_inventory decides whether returned units go back on hand when
    a request line does not say so explicitly.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="return_reasons",
    )

    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    affects_inventory = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "code"],
                name="uniq_return_reason_code_per_org",
            ),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"
