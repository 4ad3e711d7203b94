# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models anywhere (models must stay pure).
"""

from accounting.models.account import Account
from accounting.models.choices import (
    AccountNature,
    AccountType,
    EntryStatus,
    EntryType,
    ExpenseCategory,
    ExpensePaymentMethod,
    Movement,
    PaymentMethod,
)
from accounting.models.expense import Expense
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalEntryLine

__all__ = [
    "Account",
    "AccountNature",
    "AccountType",
    "EntryStatus",
    "EntryType",
    "Expense",
    "ExpenseCategory",
    "ExpensePaymentMethod",
    "JournalEntry",
    "JournalEntryLine",
    "Movement",
    "PaymentMethod",
]
