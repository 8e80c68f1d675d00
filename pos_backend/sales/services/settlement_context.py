# sales/services/settlement_context.py

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sales.services.settlement_router import SettlementKind
from sales.services.refund_validator import ValidatedRefund
from sales.services.tax_calculator import TaxSplit


@dataclass
class SettlementContext:
    """State shared by the steps of one settlement attempt."""

    sale: object
    invoice: Optional[object]
    validated: ValidatedRefund
    tax_split: TaxSplit
    kind: SettlementKind
    amount: Decimal
    user: object
    settlement: object

    # filled in by steps / side effects
    credit_note_document: Optional[object] = None
    customer_credit: Optional[object] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return (self.validated.request.reason or "").strip()

    @property
    def refund_method(self) -> str:
        return self.validated.request.refund_method
