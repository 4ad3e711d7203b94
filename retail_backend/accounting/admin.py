# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.expense import Expense
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalEntryLine


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "nature",
        "account_type",
        "tenant",
        "is_active",
    )
    list_filter = ("account_type", "nature", "is_active", "tenant")
    search_fields = ("code", "name")
    ordering = ("tenant", "code")
    readonly_fields = ("tenant", "code", "nature", "account_type", "created_at", "updated_at")

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("tenant", "code", "name", "nature", "account_type", "description"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_active",),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# JOURNAL ENTRY (READ-ONLY)
# ============================================================


class JournalEntryLineInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = JournalEntryLine
    extra = 0
    fields = ("line_order", "account", "movement", "amount", "description")
    readonly_fields = fields
    ordering = ("line_order",)


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "entry_number",
        "tenant",
        "entry_date",
        "entry_type",
        "status",
        "total_debits",
        "total_credits",
        "reference_number",
    )
    list_filter = ("status", "entry_type", "tenant", "entry_date")
    search_fields = ("entry_number", "description", "reference_number", "reference_id")
    ordering = ("-entry_date", "-created_at")
    inlines = [JournalEntryLineInline]


# ============================================================
# EXPENSE
# ============================================================


@admin.register(Expense)
class ExpenseAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "tenant",
        "category",
        "expense_date",
        "total_amount",
        "payment_method",
        "journal_entry",
    )
    list_filter = ("category", "payment_method", "tenant")
    search_fields = ("vendor", "narration")
