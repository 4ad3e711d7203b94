# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Double-entry core:
- Chart of accounts (per tenant)
- Journal entries + lines (ledger engine)
- Expenses, balances, trial balance
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting"
