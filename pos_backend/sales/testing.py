# sales/testing.py

"""
TEST DATA BUILDERS

Small builders shared by the returns test suites. They create rows the same
way the POS does (sale + items + payment, mirrored invoice, receivable), so
the settlement engine sees realistic data.
"""

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model

from billing.models import AccountsReceivable, Invoice, InvoiceItem
from organizations.models import Branch, Organization
from products.models import Product
from sales.models import Customer, Payment, ReturnReason, Sale, SaleItem

User = get_user_model()


def make_scope(name="Tienda Centro"):
    organization = Organization.objects.create(name=name)
    branch = Branch.objects.create(organization=organization, name=f"{name} - Main", code="MAIN")
    return organization, branch


def make_user(organization, branch=None, *, role="cashier", email=None):
    return User.objects.create_user(
        email=email or f"{role}@{organization.id.hex[:8]}.test",
        password="pass",
        role=role,
        organization=organization,
        branch=branch,
    )


def make_product(organization, *, name="Camiseta", sku="", price="50.00", stock=10):
    return Product.objects.create(
        organization=organization,
        name=name,
        sku=sku,
        unit_price=Decimal(price),
        stock_quantity=stock,
    )


def make_reason(organization, *, code, name=None, affects_inventory=True):
    return ReturnReason.objects.create(
        organization=organization,
        code=code,
        name=name or code.replace("_", " ").title(),
        affects_inventory=affects_inventory,
    )


def make_sale(
    *,
    organization,
    branch=None,
    user=None,
    lines,
    tax_total="0.00",
    balance=None,
    payment_method="cash",
    customer=None,
    with_invoice=True,
    invoice_balance=None,
    invoice_document_type=Invoice.DocumentType.INVOICE,
    with_receivable=False,
):
    """
    lines: [(product_or_None, quantity, unit_price), ...]

    subtotal = sum of line totals, total = subtotal + tax_total.
    balance defaults to 0 (paid at the counter); pass a balance for credit sales.
    """
    subtotal = sum(
        (Decimal(str(price)) * int(qty) for _, qty, price in lines), Decimal("0.00")
    )
    tax_total = Decimal(str(tax_total))
    total = subtotal + tax_total
    balance = Decimal(str(balance)) if balance is not None else Decimal("0.00")

    if customer is None:
        customer = Customer.objects.create(
            organization=organization, name="Ana Pérez", phone="3001234567"
        )

    sale = Sale.objects.create(
        organization=organization,
        branch=branch,
        customer=customer,
        user=user,
        subtotal=subtotal,
        tax_total=tax_total,
        total=total,
        balance=balance,
        payment_method=payment_method,
        status=Sale.STATUS_PAID if balance == 0 else Sale.STATUS_OPEN,
        payment_status=Sale.PAYMENT_PAID if balance == 0 else Sale.PAYMENT_PENDING,
    )

    items = [
        SaleItem.objects.create(
            sale=sale,
            product=product,
            quantity=qty,
            unit_price=Decimal(str(price)),
        )
        for product, qty, price in lines
    ]

    paid = total - balance
    if paid > 0:
        Payment.objects.create(
            organization=organization,
            sale=sale,
            method=payment_method,
            amount=paid,
            created_by=user,
        )

    invoice = None
    if with_invoice:
        inv_balance = (
            Decimal(str(invoice_balance)) if invoice_balance is not None else balance
        )
        invoice = Invoice.objects.create(
            organization=organization,
            branch=branch,
            customer=customer,
            sale=sale,
            number=f"FV-{str(sale.id)[-6:]}",
            document_type=invoice_document_type,
            subtotal=subtotal,
            tax_total=tax_total,
            total=total,
            balance=inv_balance,
            status=Invoice.Status.PAID if inv_balance == 0 else Invoice.Status.ISSUED,
            payment_method=payment_method,
            created_by=user,
        )
        for item in items:
            InvoiceItem.objects.create(
                invoice=invoice,
                product=item.product,
                description=getattr(item.product, "name", ""),
                qty=Decimal(item.quantity),
                unit_price=item.unit_price,
                total_line=item.total,
            )

        if with_receivable:
            AccountsReceivable.objects.create(
                invoice=invoice,
                customer=customer,
                amount=total,
                balance=inv_balance,
            )

    return sale, items, invoice
