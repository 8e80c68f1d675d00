"""
SALE LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions
for Sale entities, and whether a sale can still take returns.

DESIGN PRINCIPLES:
- No database writes
- No side effects
- Single source of truth
"""

from sales.models import Sale

# ============================================================
# DOMAIN ERRORS
# ============================================================


class SaleLifecycleError(Exception):
    pass


class InvalidSaleTransitionError(SaleLifecycleError):
    pass


class SaleNotReturnableError(SaleLifecycleError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Sale.STATUS_VOID,
}

ALLOWED_TRANSITIONS = {
    Sale.STATUS_OPEN: {
        Sale.STATUS_PAID,
        Sale.STATUS_VOID,
    },
    Sale.STATUS_PAID: {
        Sale.STATUS_PAID,
        Sale.STATUS_VOID,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, sale: Sale, target_status: str):
    if not can_transition(
        from_status=sale.status,
        to_status=target_status,
    ):
        raise InvalidSaleTransitionError(
            f"Sale {sale.id} cannot transition from "
            f"'{sale.status}' to '{target_status}'"
        )


def is_returnable(sale: Sale) -> bool:
    info = Sale.get_status_enum().get(sale.status, {})
    return bool(info.get("refundable", False))


def assert_returnable(sale: Sale):
    if not is_returnable(sale):
        raise SaleNotReturnableError(
            f"Sale {sale.id} is '{sale.status}' and cannot take returns"
        )
