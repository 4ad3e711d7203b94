# products/apps.py

"""
PRODUCTS APP CONFIG

Catalog + Stock Ledger:
- Products (per tenant, sku unique per tenant)
- Stock records (one per product/variant)
- Append-only stock movements
"""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "products"
    verbose_name = "Products"
