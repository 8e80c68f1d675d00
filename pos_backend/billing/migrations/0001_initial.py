"""
======================================================
PATH: billing/migrations/0001_initial.py
======================================================
MIGRATION: FISCAL DOCUMENTS

Creates:
- Invoice (sale invoices + credit-note documents, nullable document_type)
- InvoiceItem (signed lines)
- AccountsReceivable
- CreditNote (store credit) + CreditNoteSequence (per-organization counter)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def _uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            primary_key=True,
            serialize=False,
        ),
    )


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=12, **kwargs)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("organizations", "0001_initial"),
        ("products", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=[
                _uuid_pk(),
                ("number", models.CharField(db_index=True, max_length=50)),
                (
                    "document_type",
                    models.CharField(
                        blank=True,
                        choices=[("invoice", "Invoice"), ("credit_note", "Credit note")],
                        help_text="NULL on legacy rows (treated as a sale invoice).",
                        max_length=20,
                        null=True,
                    ),
                ),
                ("subtotal", _money(default=Decimal("0.00"))),
                ("tax_total", _money(default=Decimal("0.00"))),
                ("total", _money(default=Decimal("0.00"))),
                ("balance", _money(default=Decimal("0.00"))),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("issued", "Issued"),
                            ("partial", "Partially paid"),
                            ("paid", "Paid"),
                            ("void", "Void"),
                        ],
                        db_index=True,
                        default="issued",
                        max_length=20,
                    ),
                ),
                ("currency", models.CharField(default="COP", max_length=3)),
                ("tax_included", models.BooleanField(default=False)),
                ("payment_method", models.CharField(blank=True, max_length=30)),
                ("description", models.TextField(blank=True)),
                ("issue_date", models.DateField(default=django.utils.timezone.localdate)),
                ("due_date", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="organizations.organization",
                    ),
                ),
                (
                    "branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="organizations.branch",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="sales.customer",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="sales.sale",
                    ),
                ),
                (
                    "related_invoice",
                    models.ForeignKey(
                        blank=True,
                        help_text="For credit-note documents: the invoice being reversed.",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_notes",
                        to="billing.invoice",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="invoices_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["organization", "number"], name="invoice_org_number_idx"),
                    models.Index(fields=["sale", "document_type"], name="invoice_sale_doctype_idx"),
                    models.Index(fields=["related_invoice"], name="invoice_related_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceItem",
            fields=[
                _uuid_pk(),
                ("description", models.CharField(blank=True, max_length=255)),
                ("qty", _money()),
                ("unit_price", _money()),
                ("total_line", _money()),
                (
                    "tax_rate",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5),
                ),
                ("discount_amount", _money(default=Decimal("0.00"))),
                ("tax_included", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="billing.invoice",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoice_items",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="AccountsReceivable",
            fields=[
                _uuid_pk(),
                ("amount", _money()),
                ("balance", _money(default=Decimal("0.00"))),
                (
                    "status",
                    models.CharField(
                        choices=[("current", "Current"), ("paid", "Paid")],
                        db_index=True,
                        default="current",
                        max_length=20,
                    ),
                ),
                ("due_date", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="receivables",
                        to="billing.invoice",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="receivables",
                        to="sales.customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "Accounts receivable entry",
                "verbose_name_plural": "Accounts receivable",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="CreditNote",
            fields=[
                _uuid_pk(),
                ("amount", _money()),
                ("balance", _money()),
                ("expiry_date", models.DateField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("redeemed", "Redeemed"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_notes",
                        to="organizations.organization",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_notes",
                        to="sales.customer",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_notes",
                        to="sales.sale",
                    ),
                ),
                (
                    "invoice",
                    models.OneToOneField(
                        blank=True,
                        help_text="Credit-note document issued alongside this credit.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="customer_credit",
                        to="billing.invoice",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="credit_notes_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="CreditNoteSequence",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("last_number", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "organization",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="credit_note_sequence",
                        to="organizations.organization",
                    ),
                ),
            ],
        ),
    ]
