"""
======================================================
PATH: sales/services/partial_settlement.py
======================================================
PARTIAL-SETTLEMENT PATH

For the sale, its original invoice and the invoice's receivable:
- re-read the CURRENT balance (row-locked)
- subtract the refund-with-tax amount, clamp at 0
- write it back

Rules:
- sale status is never touched here
- invoice status: paid if new balance <= 0 else partial
- receivable status: paid if new balance <= 0 else current
- each write is its own transaction; failures are warnings
- no invoice / no receivable: the step is skipped
"""

from __future__ import annotations

import logging

from billing.models import AccountsReceivable, Invoice
from sales.models import Sale
from sales.services.money import ZERO, clamp_at_zero
from sales.services.saga import SKIPPED, SagaResult, SettlementSaga, SettlementStep
from sales.services.settlement_context import SettlementContext

logger = logging.getLogger("returns.partial")


def _reduce_sale_balance(ctx: SettlementContext) -> None:
    sale = Sale.objects.select_for_update().get(pk=ctx.sale.pk)
    previous = sale.balance
    sale.balance = clamp_at_zero(sale.balance - ctx.amount)
    sale.save(update_fields=["balance", "updated_at"])

    logger.info(
        "Sale balance reduced",
        extra={
            "sale_id": str(sale.id),
            "from": str(previous),
            "to": str(sale.balance),
        },
    )


def _reduce_invoice_balance(ctx: SettlementContext):
    if ctx.invoice is None:
        return SKIPPED

    invoice = Invoice.objects.select_for_update().get(pk=ctx.invoice.pk)
    invoice.balance = clamp_at_zero(invoice.balance - ctx.amount)
    invoice.status = Invoice.Status.PAID if invoice.balance <= ZERO else Invoice.Status.PARTIAL
    invoice.save(update_fields=["balance", "status", "updated_at"])
    return None


def _reduce_receivable_balance(ctx: SettlementContext):
    if ctx.invoice is None:
        return SKIPPED

    receivable = (
        AccountsReceivable.objects.select_for_update()
        .filter(invoice_id=ctx.invoice.pk)
        .order_by("created_at")
        .first()
    )
    if receivable is None:
        return SKIPPED

    receivable.balance = clamp_at_zero(receivable.balance - ctx.amount)
    receivable.status = (
        AccountsReceivable.Status.PAID
        if receivable.balance <= ZERO
        else AccountsReceivable.Status.CURRENT
    )
    receivable.save(update_fields=["balance", "status", "updated_at"])
    return None


def build_partial_settlement_steps(ctx: SettlementContext) -> list[SettlementStep]:
    return [
        SettlementStep(name="sale_balance", action=lambda: _reduce_sale_balance(ctx)),
        SettlementStep(name="invoice_balance", action=lambda: _reduce_invoice_balance(ctx)),
        SettlementStep(
            name="receivable_balance", action=lambda: _reduce_receivable_balance(ctx)
        ),
    ]


def run_partial_settlement(ctx: SettlementContext) -> SagaResult:
    saga = SettlementSaga(
        settlement=ctx.settlement, steps=build_partial_settlement_steps(ctx)
    )
    result = saga.run()
    ctx.warnings.extend(result.warnings)
    return result
