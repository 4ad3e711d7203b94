# products/tests/test_stock_ledger.py

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework.test import APIClient

from products.models import Product, StockMovement, StockRecord
from products.services.stock_ledger import (
    InsufficientStock,
    InsufficientStockError,
    StockAdjusted,
    StockLedgerError,
    adjust,
    adjust_or_raise,
    available_quantity,
)
from tenants.models import Tenant, TenantMembership

Reason = StockMovement.Reason


class StockLedgerTests(TestCase):
    """
    Stock ledger tests.

    GUARANTEES:
    - Quantities never go below zero
    - A refused decrement writes nothing
    - Every applied change has exactly one append-only movement
    - Reasons fix direction
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        self.product = Product.objects.create(
            tenant=self.tenant,
            sku="arroz-1kg",
            name="Arroz 1kg",
            sale_price=Decimal("4500.00"),
            cost_price=Decimal("3200.00"),
        )

    def _stock(self, qty, variant=""):
        return adjust_or_raise(
            product=self.product, delta=qty, reason=Reason.INITIAL, variant=variant
        )

    # ======================================================
    # APPLY
    # ======================================================

    def test_initial_stock_creates_record_and_movement(self):
        result = self._stock(10)

        self.assertIsInstance(result, StockAdjusted)
        self.assertEqual(result.quantity_before, 0)
        self.assertEqual(result.quantity_after, 10)
        self.assertEqual(result.delta, 10)
        self.assertEqual(available_quantity(product=self.product), 10)

        movement = result.movement
        self.assertEqual(movement.movement_type, StockMovement.MovementType.IN)
        self.assertEqual(movement.unit_cost_snapshot, Decimal("3200.00"))
        self.assertEqual(self.product.sku, "ARROZ-1KG")

    def test_sale_decrement_records_before_and_after(self):
        self._stock(10)

        result = adjust(
            product=self.product,
            delta=-3,
            reason=Reason.SALE,
            reference_type="Sale",
            reference_id="abc",
        )

        self.assertIsInstance(result, StockAdjusted)
        self.assertEqual(result.movement.quantity, 3)
        self.assertEqual(result.movement.quantity_before, 10)
        self.assertEqual(result.movement.quantity_after, 7)
        self.assertEqual(result.movement.signed_quantity, -3)
        self.assertEqual(available_quantity(product=self.product), 7)

    def test_variants_keep_separate_stock(self):
        self._stock(5, variant="rojo")
        self._stock(2)

        self.assertEqual(available_quantity(product=self.product, variant="rojo"), 5)
        self.assertEqual(available_quantity(product=self.product), 2)
        self.assertEqual(StockRecord.objects.filter(product=self.product).count(), 2)

    # ======================================================
    # INSUFFICIENT
    # ======================================================

    def test_decrement_beyond_available_returns_result_and_writes_nothing(self):
        self._stock(2)
        movements_before = StockMovement.objects.count()

        result = adjust(product=self.product, delta=-3, reason=Reason.SALE)

        self.assertIsInstance(result, InsufficientStock)
        self.assertEqual(result.requested, 3)
        self.assertEqual(result.available, 2)
        self.assertEqual(
            result.message, "Insufficient stock for Arroz 1kg: available 2, requested 3"
        )
        self.assertEqual(available_quantity(product=self.product), 2)
        self.assertEqual(StockMovement.objects.count(), movements_before)

    def test_decrement_without_record_does_not_create_one(self):
        result = adjust(product=self.product, delta=-1, reason=Reason.DAMAGE)

        self.assertIsInstance(result, InsufficientStock)
        self.assertEqual(result.available, 0)
        self.assertFalse(StockRecord.objects.filter(product=self.product).exists())

    def test_adjust_or_raise_raises_with_result(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            adjust_or_raise(product=self.product, delta=-1, reason=Reason.SALE)

        self.assertEqual(ctx.exception.result.requested, 1)
        self.assertIn("Insufficient stock for Arroz 1kg", str(ctx.exception))

    # ======================================================
    # GUARDRAILS
    # ======================================================

    def test_reason_fixes_direction(self):
        self._stock(5)

        with self.assertRaises(StockLedgerError):
            adjust(product=self.product, delta=2, reason=Reason.SALE)
        with self.assertRaises(StockLedgerError):
            adjust(product=self.product, delta=-2, reason=Reason.SALE_CANCELLATION)

        # ADJUSTMENT may go either way
        adjust_or_raise(product=self.product, delta=-1, reason=Reason.ADJUSTMENT)
        adjust_or_raise(product=self.product, delta=3, reason=Reason.ADJUSTMENT)
        self.assertEqual(available_quantity(product=self.product), 7)

    def test_delta_validation(self):
        for bad in (0, None, "", True, 1.5, "abc"):
            with self.subTest(delta=bad):
                with self.assertRaises(StockLedgerError):
                    adjust(product=self.product, delta=bad, reason=Reason.ADJUSTMENT)

    def test_movements_are_append_only(self):
        movement = self._stock(4).movement

        movement.note = "edited"
        with self.assertRaises(ValidationError):
            movement.save()
        with self.assertRaises(ValidationError):
            movement.delete()

    def test_record_cannot_go_negative_even_outside_the_service(self):
        record = self._stock(1).record

        record.quantity = -1
        with self.assertRaises(ValidationError):
            record.save()


class StockAdjustApiTests(TestCase):
    """
    GUARANTEES:
    - Adjustments need products.add_stockmovement
    - Insufficient stock is a 400 with the shortage message
    """

    url = "/api/products/stock/adjust/"

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        self.product = Product.objects.create(
            tenant=self.tenant,
            sku="CAFE-500",
            name="Café 500g",
            sale_price=Decimal("16500.00"),
        )
        self.user = get_user_model().objects.create_user(username="bodega", password="x")
        TenantMembership.objects.create(tenant=self.tenant, user=self.user)

        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT="tienda-uno")

    def _grant(self):
        self.user.user_permissions.add(Permission.objects.get(codename="add_stockmovement"))
        self.user = get_user_model().objects.get(pk=self.user.pk)
        self.client.force_authenticate(self.user)

    def test_requires_permission(self):
        res = self.client.post(
            self.url,
            {"product_id": str(self.product.pk), "delta": 5, "reason": "PURCHASE"},
            format="json",
        )
        self.assertEqual(res.status_code, 403)

    def test_adjust_and_shortage(self):
        self._grant()

        res = self.client.post(
            self.url,
            {"product_id": str(self.product.pk), "delta": 5, "reason": "PURCHASE"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["record"]["quantity"], 5)

        res = self.client.post(
            self.url,
            {"product_id": str(self.product.pk), "delta": -6, "reason": "DAMAGE"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["available"], 5)
        self.assertIn("Insufficient stock", res.data["detail"])

    def test_unknown_product_is_404(self):
        self._grant()
        other = Tenant.objects.create(name="Otra", slug="otra")
        foreign = Product.objects.create(
            tenant=other, sku="X-1", name="Ajeno", sale_price=Decimal("1.00")
        )

        res = self.client.post(
            self.url,
            {"product_id": str(foreign.pk), "delta": 1, "reason": "PURCHASE"},
            format="json",
        )
        self.assertEqual(res.status_code, 404)
