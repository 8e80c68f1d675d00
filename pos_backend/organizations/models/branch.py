# organizations/models/branch.py

import uuid

from django.db import models
from django.db.models import Q

from .organization import Organization


class Branch(models.Model):
    """
    Represents a physical store / branch of an organization.

    Guarantees:
    - Branches are stable master-data
    - code is optional, but if provided it must be unique per organization
    - Cash sessions are opened per branch (one open session at a time)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="branches",
    )

    name = models.CharField(max_length=255)

    code = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="Branch code (optional). If set, must be unique per organization.",
    )

    address = models.TextField(blank=True)
    phone = models.CharField(max_length=50, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "code"],
                condition=Q(code__isnull=False) & ~Q(code=""),
                name="uniq_branch_code_per_org_when_present",
            ),
        ]

    def __str__(self):
        c = (self.code or "").strip()
        if c:
            return f"{self.name} ({c})"
        return self.name
