# sales/admin.py

from django.contrib import admin

from sales.models import Sale, SaleItem, SalePayment


# ======================================================
# INLINES
# ======================================================


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    can_delete = False
    fields = (
        "product_name",
        "variant",
        "quantity",
        "unit_price",
        "discount_amount",
        "tax_rate",
        "tax_amount",
        "total",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class SalePaymentInline(admin.TabularInline):
    model = SalePayment
    extra = 0
    can_delete = False
    fields = ("method", "amount", "change_given", "reference", "status")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


# ======================================================
# SALE ADMIN
# ======================================================


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "sale_number",
        "tenant",
        "sale_type",
        "status",
        "total_amount",
        "credit_amount",
        "created_at",
    )
    readonly_fields = (
        "sale_number",
        "settlement_warnings",
        "journal_entry",
        "created_at",
        "completed_at",
        "cancelled_at",
    )
    search_fields = ("sale_number",)
    list_filter = ("status", "sale_type", "tenant", "created_at")
    inlines = [SaleItemInline, SalePaymentInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
