# sales/tests/test_concurrency.py

from __future__ import annotations

import threading
import unittest
from decimal import Decimal

from django.db import connection
from django.test import TransactionTestCase

from products.models import Product, StockMovement
from products.services.stock_ledger import adjust_or_raise, available_quantity
from sales.models import Sale
from sales.services.exceptions import InsufficientStockError
from sales.services.settlement_orchestrator import (
    PaymentRequest,
    SaleLineRequest,
    SaleRequest,
    settle,
)
from tenants.models import Tenant

D = Decimal


@unittest.skipUnless(connection.vendor == "postgresql", "row locks need PostgreSQL")
class ConcurrentSettlementTests(TransactionTestCase):
    """
    GUARANTEES:
    - Two sales of 8 racing for 10 units never oversell
    - The loser is re-validated after the conflict and fails with InsufficientStockError
    - Concurrent sales of different products in one tenant both settle
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        self.product = self._product("TV-32", "Televisor 32")
        adjust_or_raise(product=self.product, delta=10, reason=StockMovement.Reason.INITIAL)

    def _product(self, sku, name):
        return Product.objects.create(
            tenant=self.tenant,
            sku=sku,
            name=name,
            sale_price=D("100000.00"),
            tax_rate=D("19.00"),
        )

    def _sell(self, product, qty, barrier, outcomes):
        request = SaleRequest(
            tenant=self.tenant,
            lines=[SaleLineRequest(product_id=product.pk, quantity=qty)],
            payments=[PaymentRequest(method="CASH", amount=D("119000") * qty)],
        )
        try:
            barrier.wait()
            outcomes.append(settle(request))
        except Exception as exc:
            outcomes.append(exc)
        finally:
            connection.close()

    def _race(self, *jobs):
        barrier = threading.Barrier(len(jobs))
        outcomes = []
        threads = [
            threading.Thread(target=self._sell, args=(product, qty, barrier, outcomes))
            for product, qty in jobs
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return outcomes

    def test_eight_plus_eight_against_ten(self):
        outcomes = self._race((self.product, 8), (self.product, 8))

        sales = [o for o in outcomes if isinstance(o, Sale)]
        failures = [o for o in outcomes if not isinstance(o, Sale)]

        self.assertEqual(len(sales), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], InsufficientStockError)
        self.assertEqual(available_quantity(product=self.product), 2)
        self.assertEqual(Sale.objects.filter(tenant=self.tenant).count(), 1)

    def test_unrelated_products_both_settle(self):
        radio = self._product("RAD-1", "Radio")
        adjust_or_raise(product=radio, delta=5, reason=StockMovement.Reason.INITIAL)

        outcomes = self._race((self.product, 1), (radio, 1))

        self.assertTrue(all(isinstance(o, Sale) for o in outcomes), outcomes)
        numbers = sorted(o.sale_number for o in outcomes)
        self.assertEqual(len(set(numbers)), 2)
        self.assertEqual(available_quantity(product=self.product), 9)
        self.assertEqual(available_quantity(product=radio), 4)
