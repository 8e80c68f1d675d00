"""
PATH: pos/models/cash_movement.py

CASH MOVEMENT MODEL

Rules:
- Append-only: created once, never edited or deleted.
- amount is always positive; direction lives in movement_type.
- Only allowed against an OPEN session.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .cash_session import CashSession

User = settings.AUTH_USER_MODEL


class CashMovement(models.Model):
    TYPE_IN = "in"
    TYPE_OUT = "out"

    TYPE_CHOICES = (
        (TYPE_IN, "In"),
        (TYPE_OUT, "Out"),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    session = models.ForeignKey(
        CashSession,
        on_delete=models.PROTECT,
        related_name="movements",
    )

    movement_type = models.CharField(max_length=3, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    concept = models.CharField(max_length=255)

    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cash_movements",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cash_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["session", "created_at"], name="cashmove_session_created_idx"),
        ]

    def clean(self):
        if self.amount is None or Decimal(self.amount) <= Decimal("0.00"):
            raise ValidationError({"amount": "amount must be greater than zero"})

        if self.session_id and self.session.status != CashSession.STATUS_OPEN:
            raise ValidationError({"session": "Cash session is closed"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Cash movements are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Cash movements are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.movement_type} {self.amount} | {self.concept}"
