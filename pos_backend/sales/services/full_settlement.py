"""
======================================================
PATH: sales/services/full_settlement.py
======================================================
FULL-SETTLEMENT PATH

Steps (in order):
1) credit_note_document   FATAL   credit-note invoice + mirrored lines
2) invoice_balance                original invoice -> balance 0 / paid
3) sale_balance                   sale -> balance 0 / paid
4) receivable_balance             receivable -> balance 0 / paid (skipped if none)
5) sale_void                      sale -> void, payment_status refunded

Rules:
- Step 1 writes header AND lines in one transaction; if it fails no balance
  is touched.
- Steps 2-5 each run in their own transaction; a failure is a warning.
"""

from __future__ import annotations

import logging

from billing.models import AccountsReceivable, Invoice, InvoiceItem
from billing.services.numbering import next_credit_note_number
from sales.models import Sale
from sales.services.exceptions import SettlementWriteError
from sales.services.money import ZERO
from sales.services.sale_lifecycle import InvalidSaleTransitionError, validate_transition
from sales.services.saga import SKIPPED, SagaResult, SettlementSaga, SettlementStep
from sales.services.settlement_context import SettlementContext

logger = logging.getLogger("returns.full")


# ============================================================
# STEP ACTIONS
# ============================================================


def _create_credit_note_document(ctx: SettlementContext) -> None:
    original: Invoice = ctx.invoice
    sale = ctx.sale

    document = Invoice.objects.create(
        organization_id=sale.organization_id,
        branch_id=original.branch_id or sale.branch_id,
        customer_id=original.customer_id or sale.customer_id,
        sale=sale,
        number=next_credit_note_number(sale.organization),
        document_type=Invoice.DocumentType.CREDIT_NOTE,
        related_invoice=original,
        subtotal=-original.subtotal,
        tax_total=-original.tax_total,
        total=-original.total,
        balance=ZERO,
        status=Invoice.Status.ISSUED,
        currency=original.currency,
        tax_included=original.tax_included,
        payment_method=original.payment_method,
        description=f"Credit note for total return - {ctx.reason}",
        created_by=ctx.user,
    )

    lines = [
        InvoiceItem(
            invoice=document,
            product_id=item.product_id,
            description=item.description,
            qty=-item.qty,
            unit_price=item.unit_price,
            total_line=-item.total_line,
            tax_rate=item.tax_rate,
            discount_amount=-item.discount_amount,
            tax_included=item.tax_included,
        )
        for item in original.items.all().order_by("created_at")
    ]
    InvoiceItem.objects.bulk_create(lines)

    ctx.credit_note_document = document
    logger.info(
        "Credit note document issued",
        extra={
            "sale_id": str(sale.id),
            "number": document.number,
            "total": str(document.total),
        },
    )


def _void_credit_note_document(ctx: SettlementContext) -> None:
    if ctx.credit_note_document is None:
        return
    Invoice.objects.filter(pk=ctx.credit_note_document.pk).update(
        status=Invoice.Status.VOID
    )


def _settle_invoice(ctx: SettlementContext) -> None:
    invoice = Invoice.objects.select_for_update().get(pk=ctx.invoice.pk)
    invoice.balance = ZERO
    invoice.status = Invoice.Status.PAID
    invoice.save(update_fields=["balance", "status", "updated_at"])


def _settle_sale_balance(ctx: SettlementContext) -> None:
    sale = Sale.objects.select_for_update().get(pk=ctx.sale.pk)
    sale.balance = ZERO
    sale.status = Sale.STATUS_PAID
    sale.payment_status = Sale.PAYMENT_PAID
    sale.save(update_fields=["balance", "status", "payment_status", "updated_at"])


def _settle_receivable(ctx: SettlementContext):
    receivable = (
        AccountsReceivable.objects.select_for_update()
        .filter(invoice=ctx.invoice)
        .order_by("created_at")
        .first()
    )
    if receivable is None:
        logger.info(
            "No receivable for invoice; skipping",
            extra={"invoice_id": str(ctx.invoice.pk)},
        )
        return SKIPPED

    receivable.balance = ZERO
    receivable.status = AccountsReceivable.Status.PAID
    receivable.save(update_fields=["balance", "status", "updated_at"])
    return None


def _void_sale(ctx: SettlementContext) -> None:
    sale = Sale.objects.select_for_update().get(pk=ctx.sale.pk)
    try:
        validate_transition(sale=sale, target_status=Sale.STATUS_VOID)
    except InvalidSaleTransitionError as exc:
        raise SettlementWriteError(str(exc)) from exc

    sale.status = Sale.STATUS_VOID
    sale.payment_status = Sale.PAYMENT_REFUNDED
    sale.save(update_fields=["status", "payment_status", "updated_at"])


# ============================================================
# PUBLIC API
# ============================================================


def build_full_settlement_steps(ctx: SettlementContext) -> list[SettlementStep]:
    return [
        SettlementStep(
            name="credit_note_document",
            action=lambda: _create_credit_note_document(ctx),
            compensate=lambda: _void_credit_note_document(ctx),
            fatal=True,
        ),
        SettlementStep(name="invoice_balance", action=lambda: _settle_invoice(ctx)),
        SettlementStep(name="sale_balance", action=lambda: _settle_sale_balance(ctx)),
        SettlementStep(name="receivable_balance", action=lambda: _settle_receivable(ctx)),
        SettlementStep(name="sale_void", action=lambda: _void_sale(ctx)),
    ]


def run_full_settlement(ctx: SettlementContext) -> SagaResult:
    saga = SettlementSaga(settlement=ctx.settlement, steps=build_full_settlement_steps(ctx))
    result = saga.run()
    ctx.warnings.extend(result.warnings)
    return result
