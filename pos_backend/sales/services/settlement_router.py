# sales/services/settlement_router.py

"""
SETTLEMENT ROUTER

FULL when the summed item refund amounts equal the sale total (within
epsilon), PARTIAL otherwise. The request's own "type" never decides.
"""

from __future__ import annotations

from enum import Enum

from sales.services.money import amounts_match


class SettlementKind(str, Enum):
    FULL = "full"
    PARTIAL = "partial"


def classify_settlement(refund_subtotal, sale_total) -> SettlementKind:
    if amounts_match(refund_subtotal, sale_total):
        return SettlementKind.FULL
    return SettlementKind.PARTIAL
