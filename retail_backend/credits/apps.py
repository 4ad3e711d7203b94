# credits/apps.py

"""
CREDITS APP CONFIG

Customer credit subledger:
- Customers with credit limits and terms
- Credits extended by credit sales
- FIFO payment allocation
"""

from django.apps import AppConfig


class CreditsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "credits"
    verbose_name = "Customer Credits"
