# cashbox/admin.py

from django.contrib import admin

from cashbox.models import CashMovement, CashRegister


class CashMovementInline(admin.TabularInline):
    model = CashMovement
    extra = 0
    can_delete = False
    fields = (
        "created_at",
        "movement_type",
        "direction",
        "payment_method",
        "amount",
        "balance_before",
        "balance_after",
        "reference_number",
        "description",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(CashRegister)
class CashRegisterAdmin(admin.ModelAdmin):
    list_display = (
        "session_number",
        "tenant",
        "status",
        "opening_balance",
        "expected_balance",
        "counted_balance",
        "difference",
        "opened_at",
        "closed_at",
    )
    list_filter = ("status", "tenant")
    search_fields = ("session_number", "name")
    inlines = [CashMovementInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
