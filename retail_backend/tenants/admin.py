# tenants/admin.py

from django.contrib import admin

from tenants.models import DocumentSequence, Tenant, TenantMembership


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "default_credit_term_days", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "slug")
    readonly_fields = ("created_at", "updated_at")


@admin.register(TenantMembership)
class TenantMembershipAdmin(admin.ModelAdmin):
    list_display = ("tenant", "user", "is_active", "created_at")
    list_filter = ("is_active", "tenant")


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    """
    Read-only: counters are advanced by the numbering service only.
    """

    list_display = ("tenant", "kind", "year", "last_value", "updated_at")
    list_filter = ("kind", "year")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
