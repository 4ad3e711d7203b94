# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.api.serializers.expenses import (
    ExpenseCreateSerializer,
    ExpenseSerializer,
)
from accounting.api.serializers.journal_entries import (
    JournalEntryCreateSerializer,
    JournalEntrySerializer,
    ReverseEntrySerializer,
)

__all__ = [
    "AccountListSerializer",
    "ExpenseSerializer",
    "ExpenseCreateSerializer",
    "JournalEntrySerializer",
    "JournalEntryCreateSerializer",
    "ReverseEntrySerializer",
]
