"""
======================================================
PATH: sales/services/side_effects.py
======================================================
SIDE-EFFECT DISPATCHER

Runs after settlement and after the return record exists:

1) refund_payout      cash / original_method:
                        • "out" cash movement on the branch's open session
                          (no open session: logged no-op)
                        • negative Payment on the sale
2) customer_credit    credit_note on PARTIAL refunds:
                        • CreditNote (balance = refund amount, expiry horizon)
                        • linked credit-note invoice document on the sale
3) restock            lines whose reason affects inventory
4) notification       return_processed signal

Rules:
- every effect runs in its own transaction
- every failure is logged, recorded on the settlement step log as
  "side_effect:<name>" and NEVER propagated to the caller
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from billing.models import CreditNote, Invoice
from billing.services.numbering import next_credit_note_number
from pos.services.cash_session import find_open_session, record_movement
from products.services.stock_returns import RestockLine, restock_items
from sales.models import Payment, ReturnReason, SaleReturn
from sales.services.exceptions import SideEffectError
from sales.services.saga import SKIPPED
from sales.services.settlement_context import SettlementContext
from sales.services.settlement_router import SettlementKind
from sales.signals import return_processed

logger = logging.getLogger("returns.side_effects")

CASH_METHODS = {SaleReturn.METHOD_CASH, SaleReturn.METHOD_ORIGINAL}


# ============================================================
# HELPERS
# ============================================================


def _refund_reference(sale) -> str:
    return f"Refund-{str(sale.id)[-8:]}"


def _reason_affects_inventory(*, organization_id, reason: str) -> Optional[bool]:
    """Catalog flag for a reason, matched by code first, then by name."""
    reason = (reason or "").strip()
    if not reason:
        return None

    active = ReturnReason.objects.filter(organization_id=organization_id, is_active=True)
    row = active.filter(code__iexact=reason).first() or active.filter(name__iexact=reason).first()
    if row is None:
        return None
    return bool(row.affects_inventory)


def resolve_affects_inventory(*, organization_id, line, top_reason: str = "") -> bool:
    """explicit line flag > catalog flag of the line reason > top reason > False"""
    if line.affects_inventory is not None:
        return bool(line.affects_inventory)

    for reason in (line.reason, top_reason):
        flag = _reason_affects_inventory(organization_id=organization_id, reason=reason)
        if flag is not None:
            return flag

    return False


# ============================================================
# EFFECTS
# ============================================================


def _refund_payout(ctx: SettlementContext, sale_return: SaleReturn):
    if ctx.refund_method not in CASH_METHODS:
        return SKIPPED

    sale = ctx.sale
    concept = f"Return: {ctx.reason}"

    session = find_open_session(sale.branch)
    if session is None:
        logger.info(
            "No open cash session for branch; cash movement skipped",
            extra={"sale_id": str(sale.id), "branch_id": str(sale.branch_id)},
        )
    else:
        record_movement(session, ctx.amount, concept, ctx.user, sale=sale)

    method = "cash"
    if ctx.refund_method == SaleReturn.METHOD_ORIGINAL:
        method = sale.payment_method or "cash"

    Payment.objects.create(
        organization_id=sale.organization_id,
        source="sale",
        sale=sale,
        method=method,
        amount=-ctx.amount,
        reference=_refund_reference(sale),
        status=Payment.STATUS_COMPLETED,
        created_by=ctx.user,
    )
    return None


def _customer_credit(ctx: SettlementContext, sale_return: SaleReturn):
    if ctx.refund_method != SaleReturn.METHOD_CREDIT_NOTE:
        return SKIPPED
    if ctx.kind != SettlementKind.PARTIAL:
        # the full path already issued the credit-note document
        return SKIPPED

    sale = ctx.sale
    split = ctx.tax_split
    expiry_days = int(getattr(settings, "RETURNS_CREDIT_NOTE_EXPIRY_DAYS", 365))
    currency = (
        getattr(ctx.invoice, "currency", None)
        or getattr(settings, "RETURNS_DEFAULT_CURRENCY", "COP")
    )

    document = Invoice.objects.create(
        organization_id=sale.organization_id,
        branch_id=sale.branch_id,
        customer_id=sale.customer_id,
        sale=sale,
        number=next_credit_note_number(sale.organization),
        document_type=Invoice.DocumentType.CREDIT_NOTE,
        related_invoice=ctx.invoice,
        subtotal=-split.subtotal,
        tax_total=-split.tax,
        total=-split.total_with_tax,
        balance=ctx.amount,
        status=Invoice.Status.ISSUED,
        currency=currency,
        payment_method=SaleReturn.METHOD_CREDIT_NOTE,
        description=f"Credit note for partial return - {ctx.reason}",
        created_by=ctx.user,
    )

    ctx.customer_credit = CreditNote.objects.create(
        organization_id=sale.organization_id,
        customer_id=sale.customer_id,
        sale=sale,
        invoice=document,
        amount=ctx.amount,
        balance=ctx.amount,
        expiry_date=timezone.localdate() + timedelta(days=expiry_days),
        status=CreditNote.Status.ACTIVE,
        notes=f"Return {sale_return.id}: {ctx.reason}",
        created_by=ctx.user,
    )
    return None


def _restock(ctx: SettlementContext, sale_return: SaleReturn):
    lines = [
        RestockLine(
            sale_item_id=line.sale_item_id,
            product_id=line.product_id,
            quantity=line.return_quantity,
        )
        for line in ctx.validated.lines
        if line.product_id
        and resolve_affects_inventory(
            organization_id=ctx.sale.organization_id,
            line=line,
            top_reason=ctx.reason,
        )
    ]
    if not lines:
        return SKIPPED

    restock_items(
        sale_return=sale_return,
        lines=lines,
        user=ctx.user,
        note=f"Return: {ctx.reason}",
    )
    return None


def _notify(ctx: SettlementContext, sale_return: SaleReturn):
    return_processed.send(
        sender=SaleReturn,
        sale_return=sale_return,
        kind=ctx.kind.value,
        settlement=ctx.settlement,
        amount=ctx.amount,
    )
    return None


EFFECTS: list[tuple[str, Callable]] = [
    ("refund_payout", _refund_payout),
    ("customer_credit", _customer_credit),
    ("restock", _restock),
    ("notification", _notify),
]


# ============================================================
# PUBLIC API
# ============================================================


def dispatch_side_effects(ctx: SettlementContext, sale_return: SaleReturn) -> dict[str, str]:
    """Run every effect; returns {effect name: "ok" | "skipped" | "failed"}."""
    outcomes: dict[str, str] = {}

    for name, effect in EFFECTS:
        step_name = f"side_effect:{name}"
        try:
            with transaction.atomic():
                outcome = effect(ctx, sale_return)
        except Exception as exc:
            error = SideEffectError(f"{name} failed: {exc}")
            logger.exception(
                "Side effect failed",
                extra={
                    "sale_id": str(ctx.sale.id),
                    "sale_return_id": str(sale_return.id),
                    "effect": name,
                    "error": str(error),
                },
            )
            ctx.settlement.record_step(name=step_name, outcome="failed", detail=str(exc))
            outcomes[name] = "failed"
            continue

        result = SKIPPED if outcome == SKIPPED else "ok"
        ctx.settlement.record_step(name=step_name, outcome=result)
        outcomes[name] = result

    return outcomes
