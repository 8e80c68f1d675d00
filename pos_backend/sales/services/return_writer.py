# sales/services/return_writer.py

"""
RETURN RECORD WRITER

Writes the one auditable SaleReturn (status processed) for a settlement.

Rules:
- Written AFTER balances were settled; if it fails the balances stay as
  they are and AuditWriteError reaches the caller.
- return_items keeps the validated (aggregated) lines in request order.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from sales.models import SaleReturn
from sales.services.exceptions import AuditWriteError
from sales.services.settlement_context import SettlementContext

logger = logging.getLogger("returns.audit")


def write_return_record(ctx: SettlementContext) -> SaleReturn:
    sale = ctx.sale
    request = ctx.validated.request

    record = SaleReturn(
        organization_id=sale.organization_id,
        branch_id=sale.branch_id or getattr(ctx.user, "branch_id", None),
        sale=sale,
        user=ctx.user,
        total_refund=ctx.validated.refund_subtotal,
        reason=ctx.reason,
        notes=(request.notes or "").strip(),
        refund_method=request.refund_method,
        status=SaleReturn.STATUS_PROCESSED,
        return_items=[line.as_record() for line in ctx.validated.lines],
        return_date=timezone.now(),
    )

    try:
        with transaction.atomic():
            record.full_clean()
            record.save()
    except (DatabaseError, ValidationError) as exc:
        logger.error(
            "Return record could not be written",
            extra={
                "sale_id": str(sale.id),
                "settlement_id": str(ctx.settlement.id),
                "error": str(exc),
            },
        )
        raise AuditWriteError(f"Return record could not be written: {exc}") from exc

    logger.info(
        "Return record written",
        extra={
            "sale_id": str(sale.id),
            "sale_return_id": str(record.id),
            "total_refund": str(record.total_refund),
        },
    )
    return record
