# sales/tests/test_sales_api.py

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.test import TestCase
from rest_framework.test import APIClient

from products.models import Product, StockMovement
from products.services.stock_ledger import adjust_or_raise, available_quantity
from sales.models import Sale
from tenants.models import Tenant, TenantMembership

D = Decimal


class SalesApiTests(TestCase):
    """
    Sales API tests.

    GUARANTEES:
    - Settling requires sales.add_sale; cancel/retry require sales.change_sale
    - Validation failures map to 400 with a message
    - Sales are scoped to the X-Tenant tenant
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        self.product = Product.objects.create(
            tenant=self.tenant,
            sku="TV-32",
            name="Televisor 32",
            sale_price=D("100000.00"),
            tax_rate=D("19.00"),
        )
        adjust_or_raise(product=self.product, delta=3, reason=StockMovement.Reason.INITIAL)

        self.user = get_user_model().objects.create_user(username="cajero", password="x")
        TenantMembership.objects.create(tenant=self.tenant, user=self.user)

        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT="tienda-uno")

    def _grant(self, *codenames):
        for codename in codenames:
            self.user.user_permissions.add(Permission.objects.get(codename=codename))
        self.user = get_user_model().objects.get(pk=self.user.pk)
        self.client.force_authenticate(self.user)

    def _payload(self, qty=1, cash="119000"):
        return {
            "lines": [{"product_id": str(self.product.pk), "quantity": qty}],
            "payments": [{"method": "CASH", "amount": cash}],
        }

    # ======================================================
    # SETTLE
    # ======================================================

    def test_settle_requires_permission(self):
        res = self.client.post("/api/sales/", self._payload(), format="json")
        self.assertEqual(res.status_code, 403)
        self.assertFalse(Sale.objects.exists())

    def test_settle_and_list(self):
        self._grant("add_sale")

        res = self.client.post("/api/sales/", self._payload(cash="120000"), format="json")
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["status"], "COMPLETED")
        self.assertEqual(res.data["total_amount"], "119000.00")
        self.assertEqual(res.data["change_amount"], "1000.00")
        self.assertEqual(len(res.data["items"]), 1)
        self.assertEqual(res.data["settlement_warnings"], [])

        res = self.client.get("/api/sales/?status=COMPLETED")
        self.assertEqual(res.status_code, 200)
        rows = res.data["results"] if isinstance(res.data, dict) else res.data
        self.assertEqual(len(rows), 1)

    def test_insufficient_stock_is_400(self):
        self._grant("add_sale")

        res = self.client.post("/api/sales/", self._payload(qty=4, cash="476000"), format="json")

        self.assertEqual(res.status_code, 400)
        self.assertIn("available 3, requested 4", res.data["detail"])
        self.assertEqual(available_quantity(product=self.product), 3)

    def test_other_tenant_cannot_see_sale(self):
        self._grant("add_sale")
        res = self.client.post("/api/sales/", self._payload(), format="json")
        sale_id = res.data["id"]

        other = Tenant.objects.create(name="Tienda Dos", slug="tienda-dos")
        TenantMembership.objects.create(tenant=other, user=self.user)
        self.client.credentials(HTTP_X_TENANT="tienda-dos")

        res = self.client.get(f"/api/sales/{sale_id}/")
        self.assertEqual(res.status_code, 404)

    # ======================================================
    # CANCEL + RETRY
    # ======================================================

    def test_cancel_flow(self):
        self._grant("add_sale")
        sale_id = self.client.post("/api/sales/", self._payload(), format="json").data["id"]
        url = f"/api/sales/{sale_id}/cancel/"

        res = self.client.post(url, {"reason": "Error de digitación"}, format="json")
        self.assertEqual(res.status_code, 403)

        self._grant("change_sale")
        res = self.client.post(url, {"reason": "Error de digitación"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "CANCELLED")
        self.assertEqual(available_quantity(product=self.product), 3)

        res = self.client.post(url, {}, format="json")
        self.assertEqual(res.status_code, 400)

    def test_retry_validates_step(self):
        self._grant("add_sale", "change_sale")
        sale_id = self.client.post("/api/sales/", self._payload(), format="json").data["id"]

        res = self.client.post(f"/api/sales/{sale_id}/retry/", {"step": "fax"}, format="json")
        self.assertEqual(res.status_code, 400)

        res = self.client.post(f"/api/sales/{sale_id}/retry/", {"step": "ledger"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertTrue(res.data["succeeded"])

    def test_unknown_sale_is_404(self):
        self._grant("change_sale")
        res = self.client.post(
            "/api/sales/00000000-0000-0000-0000-000000000000/cancel/", {}, format="json"
        )
        self.assertEqual(res.status_code, 404)
