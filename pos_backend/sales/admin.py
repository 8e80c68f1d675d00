# sales/admin.py

from django.contrib import admin

from sales.models import (
    Customer,
    Payment,
    ReturnReason,
    Sale,
    SaleItem,
    SaleReturn,
    SaleSettlement,
)


# ======================================================
# SALE ADMIN
# ======================================================


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product",
        "quantity",
        "unit_price",
        "discount_amount",
        "tax_rate",
        "tax_amount",
        "total",
    )


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    readonly_fields = ("method", "amount", "reference", "status", "created_at")


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "short_reference",
        "organization",
        "customer",
        "status",
        "payment_status",
        "total",
        "balance",
        "sale_date",
    )
    readonly_fields = (
        "subtotal",
        "tax_total",
        "total",
        "balance",
        "sale_date",
        "created_at",
        "updated_at",
    )
    search_fields = ("id", "customer__name", "customer__phone")
    list_filter = ("status", "payment_status", "organization")
    inlines = [SaleItemInline, PaymentInline]


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "document_number", "phone", "organization")
    search_fields = ("name", "document_number", "phone")


# ======================================================
# RETURNS ADMIN
# ======================================================


@admin.register(ReturnReason)
class ReturnReasonAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "affects_inventory", "is_active", "organization")
    list_filter = ("affects_inventory", "is_active")
    search_fields = ("code", "name")


@admin.register(SaleReturn)
class SaleReturnAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "sale",
        "total_refund",
        "refund_method",
        "status",
        "user",
        "return_date",
    )
    readonly_fields = (
        "organization",
        "branch",
        "sale",
        "user",
        "total_refund",
        "reason",
        "notes",
        "refund_method",
        "status",
        "return_items",
        "return_date",
        "created_at",
    )
    search_fields = ("sale__id", "reason")
    list_filter = ("refund_method", "status", "return_date")

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(SaleSettlement)
class SaleSettlementAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "sale",
        "kind",
        "status",
        "settlement_amount",
        "created_at",
        "finished_at",
    )
    readonly_fields = (
        "sale",
        "sale_return",
        "kind",
        "refund_method",
        "refund_subtotal",
        "refund_tax",
        "refund_total",
        "settlement_amount",
        "steps",
        "error_message",
        "created_at",
        "finished_at",
    )
    list_filter = ("status", "kind")
    search_fields = ("sale__id",)
