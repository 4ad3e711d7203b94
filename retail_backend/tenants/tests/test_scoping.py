# tenants/tests/test_scoping.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from tenants.models import Tenant, TenantMembership


class TenantScopingTests(TestCase):
    """
    GUARANTEES:
    - Tenant-scoped endpoints need the X-Tenant header
    - Unknown tenants are 404, foreign tenants are 403
    - Health check is public
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        Tenant.objects.create(name="Tienda Dos", slug="tienda-dos")

        self.user = get_user_model().objects.create_user(username="cajero", password="x")
        TenantMembership.objects.create(tenant=self.tenant, user=self.user)

        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_missing_header_is_400(self):
        res = self.client.get("/api/sales/")
        self.assertEqual(res.status_code, 400)

    def test_unknown_tenant_is_404(self):
        self.client.credentials(HTTP_X_TENANT="no-existe")
        res = self.client.get("/api/sales/")
        self.assertEqual(res.status_code, 404)

    def test_tenant_without_membership_is_403(self):
        self.client.credentials(HTTP_X_TENANT="tienda-dos")
        res = self.client.get("/api/sales/")
        self.assertEqual(res.status_code, 403)

    def test_member_is_allowed(self):
        self.client.credentials(HTTP_X_TENANT="Tienda-Uno")
        res = self.client.get("/api/sales/")
        self.assertEqual(res.status_code, 200)

    def test_health_is_public(self):
        res = APIClient().get("/api/health/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["db"], "ok")
        self.assertIn("accounting_posting", res.data)
