# organizations/admin.py

from django.contrib import admin

from organizations.models import Branch, Organization


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "tax_id", "currency", "is_active", "created_at")
    search_fields = ("name", "tax_id")
    list_filter = ("is_active",)


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "organization", "is_active")
    search_fields = ("name", "code")
    list_filter = ("organization", "is_active")
