"""
======================================================
PATH: sales/services/ledger_reader.py
======================================================
SALE LEDGER READER (READ-ONLY)

Purpose:
- Load everything a return decision needs about one sale:
    • the sale header
    • its items joined to product display data
    • its payments
    • the original invoice number
    • already-returned quantity per sale item

Rules:
- Read-only: never writes.
- Always scoped by organization (a sale of another tenant is "not found").
- Returned quantities are DERIVED: summed over PROCESSED returns only.
- A missing product never fails the read: the item gets placeholder display
  values and a PartialData note is attached to the ledger.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError

from billing.services.invoice_lookup import find_original_invoice
from sales.models import Payment, Sale, SaleItem, SaleReturn
from sales.services.exceptions import PartialData, SaleNotFound

logger = logging.getLogger("returns.ledger")

MISSING_PRODUCT_NAME = "Product not found"


# ============================================================
# READ MODELS
# ============================================================


@dataclass(frozen=True)
class LedgerItem:
    sale_item_id: str
    product_id: Optional[str]
    product_name: str
    sku: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    returned_quantity: int

    @property
    def returnable_quantity(self) -> int:
        return max(0, int(self.quantity) - int(self.returned_quantity))


@dataclass(frozen=True)
class LedgerPayment:
    id: str
    method: str
    amount: Decimal
    reference: str
    status: str
    created_at: object


@dataclass
class SaleLedger:
    sale: Sale
    items: list[LedgerItem]
    payments: list[LedgerPayment]
    invoice_number: Optional[str]
    returned_quantities: dict[str, int]
    partial_data: list[PartialData] = field(default_factory=list)

    def item(self, sale_item_id) -> Optional[LedgerItem]:
        key = str(sale_item_id)
        for it in self.items:
            if it.sale_item_id == key:
                return it
        return None

    @property
    def notes(self) -> list[str]:
        return [str(p) for p in self.partial_data]


# ============================================================
# HELPERS
# ============================================================


def returned_quantities_for_sale(*, sale: Sale) -> dict[str, int]:
    """
    Sum return_quantity per sale item over all PROCESSED returns of the sale.
    Pending / cancelled returns do not count.
    """
    totals: dict[str, int] = defaultdict(int)

    processed = SaleReturn.objects.filter(
        sale=sale, status=SaleReturn.STATUS_PROCESSED
    ).values_list("return_items", flat=True)

    for return_items in processed:
        for line in return_items or []:
            key = line.get("sale_item_id") or line.get("id")
            if not key:
                continue
            totals[str(key)] += int(line.get("return_quantity") or 0)

    return dict(totals)


def load_sale(*, sale_id, organization) -> Sale:
    if organization is None:
        raise SaleNotFound(f"Sale {sale_id} not found")

    try:
        sale = (
            Sale.objects.select_related("customer", "branch", "organization")
            .filter(pk=sale_id, organization=organization)
            .first()
        )
    except (ValueError, ValidationError):
        sale = None

    if sale is None:
        raise SaleNotFound(f"Sale {sale_id} not found")
    return sale


def _ledger_items(
    *, sale: Sale, returned: dict[str, int], notes: list[PartialData]
) -> list[LedgerItem]:
    rows = SaleItem.objects.filter(sale=sale).select_related("product").order_by(
        "created_at", "id"
    )

    items: list[LedgerItem] = []
    for si in rows:
        product = si.product
        if product is None:
            notes.append(PartialData(f"Product for sale item {si.id} could not be resolved"))
            name, sku, product_id = MISSING_PRODUCT_NAME, "", None
        else:
            name, sku, product_id = product.name, product.sku or "", str(product.id)

        key = str(si.id)
        items.append(
            LedgerItem(
                sale_item_id=key,
                product_id=product_id,
                product_name=name,
                sku=sku,
                quantity=int(si.quantity),
                unit_price=si.unit_price,
                total=si.total,
                tax_rate=si.tax_rate,
                tax_amount=si.tax_amount,
                discount_amount=si.discount_amount,
                returned_quantity=int(returned.get(key, 0)),
            )
        )
    return items


def _ledger_payments(*, sale: Sale, notes: list[PartialData]) -> list[LedgerPayment]:
    try:
        rows = list(Payment.objects.filter(sale=sale).order_by("created_at"))
    except DatabaseError as exc:
        logger.warning(
            "Payments could not be loaded for sale",
            extra={"sale_id": str(sale.id), "error": str(exc)},
        )
        notes.append(PartialData(f"Payments for sale {sale.id} could not be loaded"))
        return []

    return [
        LedgerPayment(
            id=str(p.id),
            method=p.method,
            amount=p.amount,
            reference=p.reference,
            status=p.status,
            created_at=p.created_at,
        )
        for p in rows
    ]


# ============================================================
# PUBLIC API
# ============================================================


def read_sale_ledger(sale_id, organization) -> SaleLedger:
    sale = load_sale(sale_id=sale_id, organization=organization)

    notes: list[PartialData] = []
    returned = returned_quantities_for_sale(sale=sale)

    items = _ledger_items(sale=sale, returned=returned, notes=notes)
    payments = _ledger_payments(sale=sale, notes=notes)

    invoice = find_original_invoice(sale=sale)

    if notes:
        logger.info(
            "Sale ledger read with partial data",
            extra={"sale_id": str(sale.id), "notes": [str(n) for n in notes]},
        )

    return SaleLedger(
        sale=sale,
        items=items,
        payments=payments,
        invoice_number=invoice.number if invoice is not None else None,
        returned_quantities=returned,
        partial_data=notes,
    )
