# sales/services/refund_request.py

"""
REFUND REQUEST (INPUT CONTRACT)

Plain value objects handed to process_return(). The REST serializer builds
them from the request body; tests build them directly.

`type` ("full" / "partial") is informational only: the settlement kind is
always decided from amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

REFUND_METHODS = ("cash", "credit_note", "original_method")


@dataclass(frozen=True)
class RefundRequestItem:
    sale_item_id: str
    return_quantity: int
    refund_amount: Decimal
    reason: str
    product_id: Optional[str] = None
    affects_inventory: Optional[bool] = None


@dataclass(frozen=True)
class RefundRequest:
    items: list[RefundRequestItem]
    refund_method: str
    reason: str
    type: str = "partial"
    total_refund: Optional[Decimal] = None
    notes: str = ""

