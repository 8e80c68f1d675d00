# sales/signals.py

"""
RETURNS SIGNALS

return_processed is sent once per processed return, after settlement and
after the return record exists.

kwargs: sale_return, kind ("full" / "partial"), settlement, amount
"""

from __future__ import annotations

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger("returns.notifications")

return_processed = Signal()


@receiver(return_processed)
def log_return_notification(sender, sale_return=None, kind=None, amount=None, **kwargs):
    logger.info(
        "Return processed",
        extra={
            "sale_return_id": str(getattr(sale_return, "id", "")),
            "sale_id": str(getattr(sale_return, "sale_id", "")),
            "kind": str(kind),
            "amount": str(amount),
        },
    )
