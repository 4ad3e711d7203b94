# cashbox/apps.py

"""
CASHBOX APP CONFIG

Cash register sessions:
- One OPEN register per tenant
- Cash movements (sales, refunds, deposits, withdrawals, ...)
- Closing count with discrepancy posting
"""

from django.apps import AppConfig


class CashboxConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "cashbox"
    verbose_name = "Cash Registers"
