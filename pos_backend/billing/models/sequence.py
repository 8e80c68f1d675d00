# billing/models/sequence.py

from django.db import models


class CreditNoteSequence(models.Model):
    """
    Per-organization counter for credit-note document numbers.
    Only billing.services.numbering touches it (row-locked increments).
    """

    organization = models.OneToOneField(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="credit_note_sequence",
    )
    last_number = models.PositiveIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.organization_id} -> {self.last_number}"
