# tenants/api/scoping.py

"""
TENANT SCOPING FOR API VIEWS

Every API request acts on exactly one tenant, chosen by the X-Tenant header (slug).

Rules:
- Missing/unknown tenant -> 400 / 404
- Authenticated user must hold an active membership (superuser override)
"""

from __future__ import annotations

from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from tenants.models import Tenant, TenantMembership

TENANT_HEADER = "HTTP_X_TENANT"


def user_can_access_tenant(user, tenant: Tenant) -> bool:
    if not user or not getattr(user, "is_authenticated", False):
        return False
    if getattr(user, "is_superuser", False):
        return True

    return TenantMembership.objects.filter(
        tenant=tenant, user=user, is_active=True
    ).exists()


def resolve_request_tenant(request) -> Tenant:
    slug = (request.META.get(TENANT_HEADER) or "").strip().lower()
    if not slug:
        raise ValidationError({"detail": "X-Tenant header is required."})

    tenant = Tenant.objects.filter(slug=slug, is_active=True).first()
    if tenant is None:
        raise NotFound(f"Tenant '{slug}' not found.")

    if not user_can_access_tenant(request.user, tenant):
        raise PermissionDenied("You do not have access to this tenant.")

    return tenant


class TenantScopedMixin:
    """
    Mixin for APIViews/ViewSets: resolves + caches the request tenant.
    """

    def get_tenant(self) -> Tenant:
        tenant = getattr(self, "_tenant", None)
        if tenant is None:
            tenant = resolve_request_tenant(self.request)
            self._tenant = tenant
        return tenant
