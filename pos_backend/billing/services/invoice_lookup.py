# billing/services/invoice_lookup.py

"""
ORIGINAL INVOICE LOOKUP

A sale's original invoice is found in two steps:
1) document_type = "invoice"
2) document_type IS NULL (legacy rows)

Credit-note documents on the same sale are never returned.
"""

from __future__ import annotations

from typing import Optional

from billing.models import Invoice


def find_original_invoice(*, sale) -> Optional[Invoice]:
    base = Invoice.objects.filter(sale=sale).order_by("created_at")

    invoice = base.filter(document_type=Invoice.DocumentType.INVOICE).first()
    if invoice is not None:
        return invoice

    return base.filter(document_type__isnull=True).first()
