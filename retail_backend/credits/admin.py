# credits/admin.py

from django.contrib import admin

from credits.models import CreditPayment, CreditPaymentAllocation, Customer, CustomerCredit


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "document_number", "tenant", "credit_limit", "credit_term_days", "is_active")
    list_filter = ("tenant", "is_active")
    search_fields = ("name", "document_number", "phone")

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CustomerCredit)
class CustomerCreditAdmin(admin.ModelAdmin):
    list_display = (
        "customer",
        "reference_number",
        "amount",
        "paid_amount",
        "balance",
        "status",
        "due_date",
    )
    list_filter = ("status", "tenant")
    search_fields = ("customer__name", "reference_number", "reference_id")
    ordering = ("due_date",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class CreditPaymentAllocationInline(admin.TabularInline):
    model = CreditPaymentAllocation
    extra = 0
    can_delete = False
    readonly_fields = ("credit", "amount", "balance_after")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(CreditPayment)
class CreditPaymentAdmin(admin.ModelAdmin):
    list_display = ("customer", "amount", "applied_amount", "excess_amount", "payment_method", "created_at")
    list_filter = ("payment_method", "tenant")
    search_fields = ("customer__name",)
    inlines = [CreditPaymentAllocationInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
