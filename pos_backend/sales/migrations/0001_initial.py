"""
======================================================
PATH: sales/migrations/0001_initial.py
======================================================
MIGRATION: SALES + RETURNS LEDGER

Creates:
- Customer, Sale, SaleItem, Payment (the sale side of the ledger)
- ReturnReason catalog
- SaleReturn audit records
- SaleSettlement checkpoints (one in_progress per sale)
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
    ]

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                _uuid_pk(),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("document_number", models.CharField(blank=True, max_length=64)),
                ("phone", models.CharField(blank=True, db_index=True, max_length=50)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customers",
                        to="organizations.organization",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                _uuid_pk(),
                ("subtotal", _money(default=Decimal("0.00"))),
                ("tax_total", _money(default=Decimal("0.00"))),
                ("total", _money(default=Decimal("0.00"))),
                ("balance", _money(default=Decimal("0.00"))),
                (
                    "payment_method",
                    models.CharField(
                        default="cash",
                        help_text="cash/card/transfer/credit",
                        max_length=32,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("paid", "Paid"), ("void", "Void")],
                        db_index=True,
                        default="paid",
                        max_length=16,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("partial", "Partial"),
                            ("paid", "Paid"),
                            ("refunded", "Refunded"),
                        ],
                        default="paid",
                        max_length=16,
                    ),
                ),
                (
                    "sale_date",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="organizations.organization",
                    ),
                ),
                (
                    "branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="organizations.branch",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                        to="sales.customer",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Cashier / staff who processed the sale",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-sale_date"],
                "indexes": [
                    models.Index(fields=["organization", "sale_date"], name="sale_org_date_idx"),
                    models.Index(fields=["status"], name="sale_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleItem",
            fields=[
                _uuid_pk(),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", _money()),
                ("discount_amount", _money(default=Decimal("0.00"))),
                (
                    "tax_rate",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5),
                ),
                ("tax_amount", _money(default=Decimal("0.00"))),
                ("total", _money(editable=False)),
                (
                    "created_at",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="sales.sale",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["sale", "created_at"], name="saleitem_sale_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                _uuid_pk(),
                ("source", models.CharField(default="sale", max_length=20)),
                ("method", models.CharField(max_length=32)),
                ("amount", _money()),
                ("reference", models.CharField(blank=True, max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="completed",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="organizations.organization",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="sales.sale",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payments_recorded",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["sale", "created_at"], name="payment_sale_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReturnReason",
            fields=[
                _uuid_pk(),
                ("code", models.CharField(max_length=50)),
                ("name", models.CharField(max_length=255)),
                ("affects_inventory", models.BooleanField(default=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="return_reasons",
                        to="organizations.organization",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("organization", "code"),
                        name="uniq_return_reason_code_per_org",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleReturn",
            fields=[
                _uuid_pk(),
                (
                    "total_refund",
                    _money(
                        default=Decimal("0.00"),
                        help_text="Refund subtotal (sum of item refund amounts, tax excluded).",
                    ),
                ),
                ("reason", models.TextField()),
                ("notes", models.TextField(blank=True)),
                (
                    "refund_method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("credit_note", "Credit note"),
                            ("original_method", "Original payment method"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processed", "Processed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="processed",
                        max_length=16,
                    ),
                ),
                ("return_items", models.JSONField(default=list)),
                (
                    "return_date",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_returns",
                        to="organizations.organization",
                    ),
                ),
                (
                    "branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_returns",
                        to="organizations.branch",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="returns",
                        to="sales.sale",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sale_returns",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-return_date"],
                "indexes": [
                    models.Index(fields=["organization", "return_date"], name="salereturn_org_date_idx"),
                    models.Index(fields=["sale", "status"], name="salereturn_sale_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleSettlement",
            fields=[
                _uuid_pk(),
                (
                    "kind",
                    models.CharField(
                        blank=True,
                        choices=[("full", "Full"), ("partial", "Partial")],
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("in_progress", "In progress"),
                            ("completed", "Completed"),
                            ("needs_reconciliation", "Needs reconciliation"),
                            ("reconciled", "Reconciled"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="in_progress",
                        max_length=24,
                    ),
                ),
                ("refund_method", models.CharField(blank=True, max_length=20)),
                ("refund_subtotal", _money(default=Decimal("0.00"))),
                ("refund_tax", _money(default=Decimal("0.00"))),
                ("refund_total", _money(default=Decimal("0.00"))),
                (
                    "settlement_amount",
                    _money(
                        default=Decimal("0.00"),
                        help_text="Amount applied to balances (sale total for FULL, refund with tax for PARTIAL).",
                    ),
                ),
                ("steps", models.JSONField(default=list)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_settlements",
                        to="organizations.organization",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settlements",
                        to="sales.sale",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sale_settlements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sale_return",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="settlement",
                        to="sales.salereturn",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="settlement_status_created_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "in_progress")),
                        fields=("sale",),
                        name="one_in_progress_settlement_per_sale",
                    ),
                ],
            },
        ),
    ]
