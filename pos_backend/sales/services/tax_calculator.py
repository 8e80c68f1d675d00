# sales/services/tax_calculator.py

"""
TAX-PROPORTIONAL CALCULATOR

Splits a refund subtotal into (subtotal, tax, total_with_tax) using the
sale's effective tax ratio.

Rules:
- complete refund (requested == original subtotal within epsilon):
  tax is the ENTIRE original tax_total (no rounding drift)
- otherwise: tax = requested * tax_total / subtotal, half-up to cents
- original subtotal 0: tax 0
Pure function: no database access.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sales.services.money import ZERO, amounts_match, money


@dataclass(frozen=True)
class TaxSplit:
    subtotal: Decimal
    tax: Decimal
    total_with_tax: Decimal
    is_complete: bool


def split_refund_tax(original_subtotal, original_tax_total, requested_subtotal) -> TaxSplit:
    subtotal = money(original_subtotal)
    tax_total = money(original_tax_total)
    requested = money(requested_subtotal)

    is_complete = amounts_match(requested, subtotal)

    if subtotal == ZERO:
        tax = ZERO
    elif is_complete:
        tax = tax_total
    else:
        tax = money(Decimal(requested) * tax_total / subtotal)

    return TaxSplit(
        subtotal=requested,
        tax=tax,
        total_with_tax=money(requested + tax),
        is_complete=is_complete,
    )
