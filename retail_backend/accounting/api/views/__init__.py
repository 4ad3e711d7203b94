# accounting/api/views/__init__.py

"""
accounting.api.views package

Do NOT import accounting.api.urls from here to avoid circular imports.
"""

from accounting.api.views.accounts import AccountActivationView, AccountListView
from accounting.api.views.expenses import ExpenseListCreateView
from accounting.api.views.journal_entries import JournalEntryViewSet
from accounting.api.views.trial_balance import TrialBalanceView
from accounting.api.views.vat_position import VatPositionView

__all__ = [
    "AccountActivationView",
    "AccountListView",
    "ExpenseListCreateView",
    "JournalEntryViewSet",
    "TrialBalanceView",
    "VatPositionView",
]
