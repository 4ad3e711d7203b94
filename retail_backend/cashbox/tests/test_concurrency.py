# cashbox/tests/test_concurrency.py

from __future__ import annotations

import threading
import unittest
from decimal import Decimal

from django.db import connection
from django.test import TransactionTestCase

from cashbox.models import CashMovement
from cashbox.services.cash_register_service import open_register, register_sale_payments
from products.models import Product, StockMovement
from products.services.stock_ledger import adjust_or_raise
from sales.services.settlement_orchestrator import (
    PaymentRequest,
    SaleLineRequest,
    SaleRequest,
    settle,
)
from tenants.models import Tenant

D = Decimal


@unittest.skipUnless(connection.vendor == "postgresql", "row locks need PostgreSQL")
class ConcurrentRegistrationTests(TransactionTestCase):
    """
    GUARANTEES:
    - Two concurrent registrations of the same sale write its movements once
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        product = Product.objects.create(
            tenant=self.tenant,
            sku="TV-32",
            name="Televisor 32",
            sale_price=D("100000.00"),
            tax_rate=D("19.00"),
        )
        adjust_or_raise(product=product, delta=1, reason=StockMovement.Reason.INITIAL)

        # Settled while no register is open, so the sale is still unregistered.
        self.sale = settle(
            SaleRequest(
                tenant=self.tenant,
                lines=[SaleLineRequest(product_id=product.pk, quantity=1)],
                payments=[PaymentRequest(method="CASH", amount=D("119000"))],
            )
        )
        self.register = open_register(tenant=self.tenant, opening_balance="0")

    def _register(self, barrier, errors):
        try:
            barrier.wait()
            register_sale_payments(sale=self.sale)
        except Exception as exc:
            errors.append(exc)
        finally:
            connection.close()

    def test_same_sale_registered_once(self):
        barrier = threading.Barrier(2)
        errors = []
        threads = [threading.Thread(target=self._register, args=(barrier, errors)) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(
            CashMovement.objects.filter(
                reference_id=str(self.sale.pk),
                movement_type=CashMovement.MovementType.SALE,
            ).count(),
            1,
        )
        self.register.refresh_from_db()
        self.assertEqual(self.register.expected_balance, D("119000.00"))
        self.assertEqual(self.register.total_sales, D("119000.00"))
