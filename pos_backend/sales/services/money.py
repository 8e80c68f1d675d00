# sales/services/money.py

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def amount_epsilon() -> Decimal:
    return Decimal(str(getattr(settings, "RETURNS_AMOUNT_EPSILON", "0.01")))


def amounts_match(a, b) -> bool:
    """True when two amounts are within the configured epsilon (strictly below)."""
    return abs(Decimal(str(a or 0)) - Decimal(str(b or 0))) < amount_epsilon()


def clamp_at_zero(v) -> Decimal:
    v = money(v)
    return v if v > ZERO else ZERO
