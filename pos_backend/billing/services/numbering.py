# billing/services/numbering.py

"""
CREDIT NOTE NUMBERING

Rules:
- Numbers are organization-scoped and strictly increasing.
- The sequence row is locked (select_for_update) for the increment, so two
  concurrent settlements never receive the same number.
- Format: <PREFIX>-<6 digit counter>, e.g. "NC-000001".
"""

from __future__ import annotations

from django.conf import settings
from django.db import transaction

from billing.models import CreditNoteSequence

NUMBER_WIDTH = 6


def format_credit_note_number(value: int, *, prefix: str | None = None) -> str:
    prefix = (prefix or getattr(settings, "RETURNS_CREDIT_NOTE_PREFIX", "NC")).strip()
    return f"{prefix}-{str(int(value)).zfill(NUMBER_WIDTH)}"


def next_credit_note_number(organization) -> str:
    """Allocate the next credit-note number for `organization`."""
    if organization is None:
        raise ValueError("organization is required")

    with transaction.atomic():
        seq, _ = CreditNoteSequence.objects.select_for_update().get_or_create(
            organization=organization,
            defaults={"last_number": 0},
        )
        seq.last_number += 1
        seq.save(update_fields=["last_number", "updated_at"])

        return format_credit_note_number(seq.last_number)
