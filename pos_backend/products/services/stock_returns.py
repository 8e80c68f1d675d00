# products/services/stock_returns.py

"""
STOCK RETURNS ENGINE

Purpose:
- Put returned units back on hand after a sale return was recorded.
- Integer-only quantities (StockMovement.quantity is PositiveIntegerField).

IDEMPOTENCY CONTRACT:
- Exactly one StockMovement(reason=RETURN) per (sale return, sale item).
- Re-invoking for the same pair is a no-op (the existing movement is skipped,
  stock is not incremented twice).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import F

from products.models import Product, StockMovement


# ============================================================
# DOMAIN ERRORS
# ============================================================

class StockReturnError(Exception):
    """Domain error for restock failures."""


# ============================================================
# INPUT / OUTPUT
# ============================================================

@dataclass(frozen=True)
class RestockLine:
    sale_item_id: object
    product_id: object
    quantity: int


@dataclass(frozen=True)
class RestockResult:
    created: list
    skipped: list


# ============================================================
# HELPERS
# ============================================================

def _to_positive_int(value, *, field: str) -> int:
    if isinstance(value, bool):
        raise StockReturnError(f"{field} must be an integer")

    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise StockReturnError(f"{field} must be an integer")

    if qty <= 0:
        raise StockReturnError(f"{field} must be greater than zero")

    return qty


# ============================================================
# PUBLIC API
# ============================================================

@transaction.atomic
def restock_items(
    *,
    sale_return,
    lines: Iterable[RestockLine],
    user=None,
    note: str = "",
) -> RestockResult:
    """
    Re-enter returned units into stock.

    For every line:
    - skip when a RETURN movement already exists for (sale_return, sale_item)
    - otherwise lock the product row, increment stock_quantity and append
      one StockMovement(IN, RETURN)
    """
    if sale_return is None:
        raise StockReturnError("sale_return is required")

    created = []
    skipped = []

    for line in lines:
        qty = _to_positive_int(line.quantity, field="quantity")

        already = StockMovement.objects.filter(
            reason=StockMovement.Reason.RETURN,
            sale_return=sale_return,
            sale_item_id=line.sale_item_id,
        ).exists()
        if already:
            skipped.append(line.sale_item_id)
            continue

        product: Optional[Product] = (
            Product.objects.select_for_update().filter(pk=line.product_id).first()
        )
        if product is None:
            raise StockReturnError(f"Product {line.product_id} not found")

        Product.objects.filter(pk=product.pk).update(
            stock_quantity=F("stock_quantity") + qty
        )

        movement = StockMovement.objects.create(
            product=product,
            movement_type=StockMovement.MovementType.IN,
            reason=StockMovement.Reason.RETURN,
            quantity=qty,
            performed_by=user,
            sale_return=sale_return,
            sale_item_id=line.sale_item_id,
            note=(note or "")[:255],
        )
        created.append(movement)

    return RestockResult(created=created, skipped=skipped)
