# sales/apps.py

"""
SALES APP CONFIG

Point-of-sale settlement:
- Sales, line snapshots and split payments
- Settlement orchestration across stock, credit, cash register and ledger
"""

from django.apps import AppConfig


class SalesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sales"
    verbose_name = "Sales"
