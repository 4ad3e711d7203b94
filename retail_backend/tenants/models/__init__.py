# tenants/models/__init__.py

"""
TENANTS MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
"""

from tenants.models.sequence import DocumentSequence
from tenants.models.tenant import Tenant, TenantMembership

__all__ = [
    "Tenant",
    "TenantMembership",
    "DocumentSequence",
]
