"""
======================================================
PATH: sales/services/refund_orchestrator.py
======================================================
RETURN ORCHESTRATOR (APPLICATION SERVICE)

process_return(sale_id, refund_request, user) -> ReturnOutcome

Flow:
1) capability check (pos.refund)
2) load the sale in the caller's organization
3) CLAIM: create an in_progress SaleSettlement (one per sale at a time)
4) fresh ledger read + validation
5) proportional tax split + FULL / PARTIAL routing
6) original invoice lookup (FULL requires one)
7) settlement saga (full or partial path)
8) return record (AuditWriteError if it cannot be written)
9) side effects (never fail the return)
10) checkpoint -> completed / needs_reconciliation

Guarantees:
- Nothing is written when validation rejects the request.
- An exception never leaves the in_progress claim behind: it is dropped
  when nothing was written yet, otherwise flagged needs_reconciliation.
- The operator hears "success" only once the return record exists.
- Balance writes are NOT one transaction; partial failures are reported
  as warnings and left visible on the settlement checkpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction

from billing.services.invoice_lookup import find_original_invoice
from permissions.roles import CAP_POS_REFUND, user_has_capability
from sales.models import SaleReturn, SaleSettlement
from sales.services.exceptions import (
    AuditWriteError,
    InvoiceNotFound,
    ReturnValidationError,
    SettlementInProgressError,
)
from sales.services.full_settlement import run_full_settlement
from sales.services.ledger_reader import load_sale, read_sale_ledger
from sales.services.money import money
from sales.services.partial_settlement import run_partial_settlement
from sales.services.refund_request import RefundRequest
from sales.services.refund_validator import validate_refund_request
from sales.services.return_writer import write_return_record
from sales.services.sale_lifecycle import SaleNotReturnableError, assert_returnable
from sales.services.settlement_context import SettlementContext
from sales.services.settlement_router import SettlementKind, classify_settlement
from sales.services.side_effects import dispatch_side_effects
from sales.services.tax_calculator import TaxSplit, split_refund_tax

logger = logging.getLogger("returns")


@dataclass
class ReturnOutcome:
    sale_return: SaleReturn
    kind: SettlementKind
    tax_split: TaxSplit
    settlement_amount: Decimal
    settlement: SaleSettlement
    warnings: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    credit_note_document: Optional[object] = None
    customer_credit: Optional[object] = None
    side_effects: dict[str, str] = field(default_factory=dict)


# ============================================================
# HELPERS
# ============================================================


def _assert_user_can_refund(*, user):
    if not user or not getattr(user, "is_authenticated", False):
        raise PermissionDenied("Authentication required to process a return.")

    if not user_has_capability(user, CAP_POS_REFUND):
        raise PermissionDenied(
            f"Users with role '{getattr(user, 'role', None)}' are not allowed to process returns."
        )


def _claim_settlement(*, sale, user, refund_method: str) -> SaleSettlement:
    try:
        with transaction.atomic():
            return SaleSettlement.objects.create(
                organization_id=sale.organization_id,
                sale=sale,
                user=user,
                refund_method=refund_method or "",
                status=SaleSettlement.Status.IN_PROGRESS,
            )
    except IntegrityError as exc:
        logger.warning(
            "Settlement already in progress for sale",
            extra={"sale_id": str(sale.id)},
        )
        raise SettlementInProgressError(
            f"Another return is being processed for sale {sale.id}. Try again shortly."
        ) from exc


def _release_claim(settlement: SaleSettlement) -> None:
    SaleSettlement.objects.filter(
        pk=settlement.pk, status=SaleSettlement.Status.IN_PROGRESS
    ).delete()


def _abandon_claim(settlement: SaleSettlement, *, writes_started: bool, error: Exception) -> None:
    """
    Never leave an in_progress claim behind an exception.

    - nothing written yet: drop the claim so the sale can be retried
    - settlement writes already ran: flag it for reconciliation
    Claims the failing step already closed (failed / needs_reconciliation)
    are left as they are.
    """
    if not writes_started:
        _release_claim(settlement)
        return

    still_open = SaleSettlement.objects.filter(
        pk=settlement.pk, status=SaleSettlement.Status.IN_PROGRESS
    ).exists()
    if not still_open:
        return

    settlement.mark(
        SaleSettlement.Status.NEEDS_RECONCILIATION,
        error_message=f"{type(error).__name__}: {error}",
    )
    logger.error(
        "Return interrupted after settlement writes",
        extra={
            "sale_id": str(settlement.sale_id),
            "settlement_id": str(settlement.id),
            "error": str(error),
        },
    )


# ============================================================
# PUBLIC API
# ============================================================


def process_return(sale_id, refund_request: RefundRequest, user) -> ReturnOutcome:
    _assert_user_can_refund(user=user)

    organization = getattr(user, "organization", None)
    sale = load_sale(sale_id=sale_id, organization=organization)

    settlement = _claim_settlement(
        sale=sale, user=user, refund_method=refund_request.refund_method
    )

    writes_started = False
    try:
        # --------------------------------------------------
        # READ + VALIDATE (under the claim)
        # --------------------------------------------------
        ledger = read_sale_ledger(sale.id, organization)
        sale = ledger.sale
        try:
            assert_returnable(sale)
        except SaleNotReturnableError as exc:
            raise ReturnValidationError(str(exc)) from exc
        validated = validate_refund_request(refund_request, ledger)

        tax_split = split_refund_tax(sale.subtotal, sale.tax_total, validated.refund_subtotal)
        kind = classify_settlement(validated.refund_subtotal, sale.total)
        amount = money(sale.total) if kind == SettlementKind.FULL else tax_split.total_with_tax

        settlement.kind = kind.value
        settlement.refund_subtotal = tax_split.subtotal
        settlement.refund_tax = tax_split.tax
        settlement.refund_total = tax_split.total_with_tax
        settlement.settlement_amount = amount
        settlement.save(
            update_fields=[
                "kind",
                "refund_subtotal",
                "refund_tax",
                "refund_total",
                "settlement_amount",
                "updated_at",
            ]
        )

        invoice = find_original_invoice(sale=sale)
        if kind == SettlementKind.FULL and invoice is None:
            settlement.mark(
                SaleSettlement.Status.FAILED,
                error_message="No original invoice found for sale",
            )
            logger.error(
                "Full return aborted: no original invoice",
                extra={"sale_id": str(sale.id), "settlement_id": str(settlement.id)},
            )
            raise InvoiceNotFound(f"No original invoice found for sale {sale.id}")

        logger.info(
            "Processing return",
            extra={
                "sale_id": str(sale.id),
                "settlement_id": str(settlement.id),
                "kind": kind.value,
                "refund_subtotal": str(tax_split.subtotal),
                "refund_tax": str(tax_split.tax),
                "settlement_amount": str(amount),
                "refund_method": refund_request.refund_method,
            },
        )

        ctx = SettlementContext(
            sale=sale,
            invoice=invoice,
            validated=validated,
            tax_split=tax_split,
            kind=kind,
            amount=amount,
            user=user,
            settlement=settlement,
        )

        # --------------------------------------------------
        # SETTLEMENT (fatal failure raises SettlementWriteError)
        # --------------------------------------------------
        writes_started = True
        if kind == SettlementKind.FULL:
            run_full_settlement(ctx)
        else:
            run_partial_settlement(ctx)

        # --------------------------------------------------
        # AUDIT RECORD
        # --------------------------------------------------
        try:
            sale_return = write_return_record(ctx)
        except AuditWriteError as exc:
            settlement.mark(
                SaleSettlement.Status.NEEDS_RECONCILIATION,
                error_message=str(exc),
            )
            raise

        settlement.sale_return = sale_return
        settlement.save(update_fields=["sale_return", "updated_at"])

        # --------------------------------------------------
        # SIDE EFFECTS (never raise)
        # --------------------------------------------------
        side_effects = dispatch_side_effects(ctx, sale_return)

        if ctx.warnings:
            settlement.mark(
                SaleSettlement.Status.NEEDS_RECONCILIATION,
                error_message="; ".join(ctx.warnings),
            )
        else:
            settlement.mark(SaleSettlement.Status.COMPLETED)
    except Exception as exc:
        _abandon_claim(settlement, writes_started=writes_started, error=exc)
        raise

    logger.info(
        "Return processed",
        extra={
            "sale_id": str(sale.id),
            "sale_return_id": str(sale_return.id),
            "settlement_id": str(settlement.id),
            "status": settlement.status,
            "warnings": len(ctx.warnings),
        },
    )

    return ReturnOutcome(
        sale_return=sale_return,
        kind=kind,
        tax_split=tax_split,
        settlement_amount=amount,
        settlement=settlement,
        warnings=list(ctx.warnings),
        notes=ledger.notes,
        credit_note_document=ctx.credit_note_document,
        customer_credit=ctx.customer_credit,
        side_effects=side_effects,
    )
