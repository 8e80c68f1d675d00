# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe stock):
- Product stock_quantity is service-managed (read-only here).
- StockMovement rows are immutable audit artifacts (view-only).
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product, StockMovement


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "sku",
        "name",
        "organization",
        "unit_price",
        "tax_rate",
        "stock_quantity",
        "is_active",
    )
    list_filter = ("is_active", "organization")
    search_fields = ("sku", "name")
    ordering = ("-created_at",)
    readonly_fields = ("stock_quantity", "created_at", "updated_at")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "product",
        "movement_type",
        "reason",
        "quantity",
        "sale_return",
        "performed_by",
        "created_at",
    )
    list_filter = ("movement_type", "reason", "created_at")
    search_fields = ("product__name", "product__sku", "note")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
