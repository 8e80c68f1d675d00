"""
======================================================
PATH: sales/services/refund_validator.py
======================================================
REFUND REASON / QUANTITY VALIDATOR

Purpose:
- Reject a refund request before anything is written.

Rules:
- at least one item
- top-level reason is required; every item needs its own reason
- quantity is an integer >= 1, refund amount is >= 0
- sale_item_id must belong to the sale
- duplicate lines for one sale item are aggregated first, then the ceiling
  (sold quantity - already returned quantity) is enforced
- refund_method must be one of cash / credit_note / original_method
- a declared total_refund must equal the sum of item refund amounts
- a line refunds at most what was paid for it: the line total pro-rated by
  quantity, grossed up by the sale's tax ratio (total / subtotal)

Always run against a ledger read taken right before settlement.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from sales.services.exceptions import ReturnValidationError
from sales.services.ledger_reader import SaleLedger
from sales.services.money import ZERO, amounts_match, money
from sales.services.refund_request import REFUND_METHODS, RefundRequest


@dataclass(frozen=True)
class ValidatedLine:
    sale_item_id: str
    product_id: Optional[str]
    return_quantity: int
    refund_amount: Decimal
    reason: str
    affects_inventory: Optional[bool]

    def as_record(self) -> dict:
        return {
            "sale_item_id": self.sale_item_id,
            "product_id": self.product_id,
            "return_quantity": self.return_quantity,
            "refund_amount": str(self.refund_amount),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ValidatedRefund:
    request: RefundRequest
    lines: list[ValidatedLine]
    refund_subtotal: Decimal


def _to_int_qty(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal) and value != value.to_integral_value():
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_amount(value) -> Optional[Decimal]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _line_refund_cap(ledger: SaleLedger, ledger_item, qty: int) -> Decimal:
    """Most that `qty` units of the line can refund, tax included."""
    sold = int(ledger_item.quantity or 0)
    if sold < 1:
        return ZERO

    share = Decimal(str(ledger_item.total or 0)) * Decimal(qty) / Decimal(sold)

    subtotal = Decimal(str(ledger.sale.subtotal or 0))
    if subtotal > ZERO:
        share = share * Decimal(str(ledger.sale.total or 0)) / subtotal

    return money(share)


def validate_refund_request(request: RefundRequest, ledger: SaleLedger) -> ValidatedRefund:
    errors: list[str] = []

    if not request.items:
        raise ReturnValidationError("Select at least one item to return.")

    if not (request.reason or "").strip():
        errors.append("A return reason is required.")

    if request.refund_method not in REFUND_METHODS:
        errors.append(
            f"Invalid refund method '{request.refund_method}'. "
            f"Must be one of: {', '.join(REFUND_METHODS)}."
        )

    # sale_item_id -> aggregated line data, first-seen order kept
    agg: dict[str, dict] = {}

    for idx, line in enumerate(request.items, start=1):
        sid = str(line.sale_item_id or "").strip()
        if not sid:
            errors.append(f"Item {idx}: sale_item_id is required.")
            continue

        ledger_item = ledger.item(sid)
        if ledger_item is None:
            errors.append(f"Item {idx}: sale item {sid} does not belong to this sale.")
            continue

        if line.product_id and ledger_item.product_id and str(line.product_id) != ledger_item.product_id:
            errors.append(f"Item {idx}: product does not match sale item {sid}.")

        reason = (line.reason or "").strip()
        if not reason:
            errors.append(f"Item {idx}: a reason is required for '{ledger_item.product_name}'.")

        qty = _to_int_qty(line.return_quantity)
        if qty is None or qty < 1:
            errors.append(f"Item {idx}: return quantity must be an integer >= 1.")
            continue

        amount = _to_amount(line.refund_amount)
        if amount is None or amount < ZERO:
            errors.append(f"Item {idx}: refund amount must be a number >= 0.")
            continue

        slot = agg.setdefault(
            sid,
            {
                "product_id": ledger_item.product_id or (str(line.product_id) if line.product_id else None),
                "qty": 0,
                "amount": ZERO,
                "reason": "",
                "affects_inventory": None,
            },
        )
        slot["qty"] += qty
        slot["amount"] += amount
        if reason and not slot["reason"]:
            slot["reason"] = reason
        if line.affects_inventory is not None and slot["affects_inventory"] is None:
            slot["affects_inventory"] = bool(line.affects_inventory)

    for sid, slot in agg.items():
        ledger_item = ledger.item(sid)
        remaining = ledger_item.returnable_quantity
        if slot["qty"] > remaining:
            errors.append(
                f"Cannot return {slot['qty']} of '{ledger_item.product_name}': "
                f"sold {ledger_item.quantity}, already returned "
                f"{ledger_item.returned_quantity}, available {remaining}."
            )
            continue

        cap = _line_refund_cap(ledger, ledger_item, slot["qty"])
        if slot["amount"] > cap and not amounts_match(slot["amount"], cap):
            errors.append(
                f"Refund of {money(slot['amount'])} for {slot['qty']} of "
                f"'{ledger_item.product_name}' exceeds the {cap} paid for them."
            )

    lines = [
        ValidatedLine(
            sale_item_id=sid,
            product_id=slot["product_id"],
            return_quantity=slot["qty"],
            refund_amount=money(slot["amount"]),
            reason=slot["reason"],
            affects_inventory=slot["affects_inventory"],
        )
        for sid, slot in agg.items()
    ]
    refund_subtotal = money(sum((ln.refund_amount for ln in lines), ZERO))

    if request.total_refund not in (None, ""):
        declared = _to_amount(request.total_refund)
        if declared is None:
            errors.append("total_refund must be a number.")
        elif not amounts_match(declared, refund_subtotal):
            errors.append(
                f"total_refund {money(declared)} does not match the item refund "
                f"amounts ({refund_subtotal})."
            )

    if errors:
        raise ReturnValidationError(errors)

    return ValidatedRefund(request=request, lines=lines, refund_subtotal=refund_subtotal)
