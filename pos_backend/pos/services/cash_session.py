# pos/services/cash_session.py

"""
CASH SESSION SERVICE

Purpose:
- Locate the open cash drawer of a branch.
- Append cash movements (refunds are "out" movements).

Rules:
- Movements are append-only.
- Refund amounts are positive; the movement type carries the direction.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.db import transaction

from pos.models import CashMovement, CashSession

logger = logging.getLogger("returns.cash")


class CashSessionError(Exception):
    """Domain error for cash drawer operations."""


def find_open_session(branch) -> Optional[CashSession]:
    if branch is None:
        return None

    return (
        CashSession.objects.filter(branch=branch, status=CashSession.STATUS_OPEN)
        .order_by("-opened_at")
        .first()
    )


@transaction.atomic
def record_movement(
    session: CashSession,
    amount,
    concept: str,
    user=None,
    *,
    movement_type: str = CashMovement.TYPE_OUT,
    sale=None,
) -> CashMovement:
    if session is None:
        raise CashSessionError("session is required")

    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise CashSessionError("amount must be a valid decimal")

    if value <= Decimal("0.00"):
        raise CashSessionError("amount must be greater than zero")

    movement = CashMovement.objects.create(
        session=session,
        movement_type=movement_type,
        amount=value,
        concept=(concept or "")[:255],
        sale=sale,
        created_by=user,
    )

    logger.info(
        "Cash movement recorded",
        extra={
            "session_id": str(session.id),
            "movement_type": movement_type,
            "amount": str(value),
        },
    )
    return movement
