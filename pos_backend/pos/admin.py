from django.contrib import admin

from .models import CashMovement, CashSession

# =====================================================
# CASH MOVEMENT INLINE (READ-ONLY)
# =====================================================


class CashMovementInline(admin.TabularInline):
    model = CashMovement
    extra = 0
    can_delete = False
    readonly_fields = (
        "movement_type",
        "amount",
        "concept",
        "sale",
        "created_by",
        "created_at",
    )

    def has_add_permission(self, request, obj=None):
        return False


# =====================================================
# CASH SESSION ADMIN
# =====================================================


@admin.register(CashSession)
class CashSessionAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "branch",
        "opened_by",
        "status",
        "opening_amount",
        "opened_at",
        "closed_at",
    )
    list_filter = ("status", "branch")
    search_fields = ("opened_by__email", "branch__name")
    readonly_fields = ("opened_at",)

    inlines = [CashMovementInline]


# =====================================================
# CASH MOVEMENT ADMIN (FULLY IMMUTABLE)
# =====================================================


@admin.register(CashMovement)
class CashMovementAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "session",
        "movement_type",
        "amount",
        "concept",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
