# tenants/apps.py

"""
TENANTS APP CONFIG

Tenant-scoping primitives shared by every other app:
- Tenant + membership records
- Per-tenant document sequences (journal entry + sale numbering)
"""

from django.apps import AppConfig


class TenantsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tenants"
    verbose_name = "Tenants"
