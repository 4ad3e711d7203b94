# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe stock):

- Products are edited freely (never deleted).
- Stock records and movements are read-only here: quantities change only
  through products.services.stock_ledger (API: POST /api/products/stock/adjust/).
"""

from django.contrib import admin

from products.models import Product, StockMovement, StockRecord


class StockRecordInline(admin.TabularInline):
    model = StockRecord
    extra = 0
    can_delete = False
    fields = ("variant", "quantity", "min_stock_level", "last_movement_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "tenant", "sale_price", "cost_price", "tax_rate", "is_active")
    list_filter = ("tenant", "is_active")
    search_fields = ("sku", "name")
    ordering = ("tenant", "name")
    inlines = [StockRecordInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "record",
        "movement_type",
        "reason",
        "quantity",
        "quantity_before",
        "quantity_after",
        "reference_type",
        "reference_id",
    )
    list_filter = ("reason", "movement_type")
    search_fields = ("reference_id", "record__product__sku", "record__product__name")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
