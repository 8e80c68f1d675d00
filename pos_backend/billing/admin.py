# billing/admin.py

from django.contrib import admin

from billing.models import (
    AccountsReceivable,
    CreditNote,
    CreditNoteSequence,
    Invoice,
    InvoiceItem,
)


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product",
        "description",
        "qty",
        "unit_price",
        "total_line",
        "tax_rate",
        "discount_amount",
    )


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "number",
        "document_type",
        "organization",
        "sale",
        "total",
        "balance",
        "status",
        "issue_date",
    )
    list_filter = ("document_type", "status", "organization")
    search_fields = ("number", "sale__id", "customer__name")
    readonly_fields = ("related_invoice", "created_at", "updated_at")
    inlines = [InvoiceItemInline]


@admin.register(AccountsReceivable)
class AccountsReceivableAdmin(admin.ModelAdmin):
    list_display = ("invoice", "customer", "amount", "balance", "status")
    list_filter = ("status",)
    search_fields = ("invoice__number", "customer__name")


@admin.register(CreditNote)
class CreditNoteAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "amount", "balance", "status", "expiry_date")
    list_filter = ("status",)
    search_fields = ("customer__name", "notes")


@admin.register(CreditNoteSequence)
class CreditNoteSequenceAdmin(admin.ModelAdmin):
    list_display = ("organization", "last_number", "updated_at")

    def has_change_permission(self, request, obj=None):
        return False
