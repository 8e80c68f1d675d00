"""
PATH: pos/models/cash_session.py

CASH SESSION MODEL

Purpose:
- One cash drawer shift per branch.
- Cash refunds are debited against the branch's OPEN session.

Rules:
- At most one open session per branch (partial unique constraint).
- A closed session is read-only.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q, Sum

User = settings.AUTH_USER_MODEL


class CashSession(models.Model):
    STATUS_OPEN = "open"
    STATUS_CLOSED = "closed"

    STATUS_CHOICES = (
        (STATUS_OPEN, "Open"),
        (STATUS_CLOSED, "Closed"),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="cash_sessions",
    )
    branch = models.ForeignKey(
        "organizations.Branch",
        on_delete=models.PROTECT,
        related_name="cash_sessions",
    )
    opened_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="cash_sessions_opened",
    )

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_OPEN,
        db_index=True,
    )

    opening_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    opened_at = models.DateTimeField(auto_now_add=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-opened_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["branch"],
                condition=Q(status="open"),
                name="one_open_cash_session_per_branch",
            )
        ]

    def clean(self):
        if self.branch_id and self.organization_id:
            if self.branch.organization_id != self.organization_id:
                raise ValidationError({"branch": "Branch does not belong to organization"})

    @property
    def is_open(self) -> bool:
        return self.status == self.STATUS_OPEN

    @property
    def net_movements(self) -> Decimal:
        ins = (
            self.movements.filter(movement_type="in").aggregate(t=Sum("amount"))["t"]
            or Decimal("0.00")
        )
        outs = (
            self.movements.filter(movement_type="out").aggregate(t=Sum("amount"))["t"]
            or Decimal("0.00")
        )
        return ins - outs

    def __str__(self):
        return f"Session {self.branch_id} ({self.status})"
