# sales/models/settlement.py

"""
======================================================
PATH: sales/models/settlement.py
======================================================
SALE SETTLEMENT (CHECKPOINT)

Purpose:
- Persisted checkpoint of one settlement attempt against a sale.
- Every saga step outcome is appended to `steps`, so an interrupted or
  partially failed settlement can be found and repaired later.

Rules:
- At most ONE in_progress settlement per sale (partial unique constraint);
  a concurrent attempt fails at claim time.
- Status flow:
    in_progress -> completed
    in_progress -> needs_reconciliation -> reconciled
    in_progress -> failed
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


class SaleSettlement(models.Model):
    class Kind(models.TextChoices):
        FULL = "full", "Full"
        PARTIAL = "partial", "Partial"

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"
        NEEDS_RECONCILIATION = "needs_reconciliation", "Needs reconciliation"
        RECONCILED = "reconciled", "Reconciled"
        FAILED = "failed", "Failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="sale_settlements",
    )
    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.PROTECT,
        related_name="settlements",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sale_settlements",
    )

    kind = models.CharField(max_length=10, choices=Kind.choices, blank=True)
    status = models.CharField(
        max_length=24,
        choices=Status.choices,
        default=Status.IN_PROGRESS,
        db_index=True,
    )

    refund_method = models.CharField(max_length=20, blank=True)

    refund_subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refund_tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refund_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    settlement_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Amount applied to balances (sale total for FULL, refund with tax for PARTIAL).",
    )

    steps = models.JSONField(default=list)

    sale_return = models.OneToOneField(
        "sales.SaleReturn",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="settlement",
    )

    error_message = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["sale"],
                condition=Q(status="in_progress"),
                name="one_in_progress_settlement_per_sale",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="settlement_status_created_idx"),
        ]

    def record_step(self, *, name: str, outcome: str, detail: str = "") -> None:
        """Append one step outcome and persist the log."""
        entry = {
            "name": name,
            "outcome": outcome,
            "at": timezone.now().isoformat(),
        }
        if detail:
            entry["detail"] = detail[:500]

        self.steps = [*(self.steps or []), entry]
        SaleSettlement.objects.filter(pk=self.pk).update(
            steps=self.steps, updated_at=timezone.now()
        )

    def mark(self, status: str, *, error_message: str = "") -> None:
        self.status = status
        update = ["status", "updated_at"]
        if error_message:
            self.error_message = error_message[:2000]
            update.append("error_message")
        if status != self.Status.IN_PROGRESS:
            self.finished_at = timezone.now()
            update.append("finished_at")
        self.save(update_fields=update)

    @property
    def failed_steps(self) -> list[dict]:
        return [s for s in (self.steps or []) if s.get("outcome") == "failed"]

    def __str__(self):
        return f"Settlement {self.id} | {self.kind or '?'} | {self.status}"
