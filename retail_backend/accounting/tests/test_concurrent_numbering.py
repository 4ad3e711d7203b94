# accounting/tests/test_concurrent_numbering.py

from __future__ import annotations

import threading
import unittest
from datetime import date
from decimal import Decimal

from django.db import connection
from django.test import TransactionTestCase

from accounting.models import EntryType, JournalEntry, Movement
from accounting.services.account_directory import LedgerAccount, provision_chart
from accounting.services.journal_entry_service import EntryRequest, LineRequest, post_entry
from tenants.models import DocumentSequence, Tenant
from tenants.services.sequences import format_document_number

D = Decimal

THREADS = 10
ENTRIES_PER_THREAD = 10


@unittest.skipUnless(connection.vendor == "postgresql", "row locks need PostgreSQL")
class ConcurrentEntryNumberingTests(TransactionTestCase):
    """
    GUARANTEES:
    - 100 entries posted from 10 threads get 100 distinct numbers
    - The numbers are exactly 1..100 for the year (no gaps, no repeats)
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        provision_chart(self.tenant)
        self.entry_date = date(2026, 4, 10)

    def _request(self):
        return EntryRequest(
            tenant=self.tenant,
            entry_type=EntryType.SALE,
            entry_date=self.entry_date,
            description="Venta concurrente",
            lines=[
                LineRequest(str(LedgerAccount.CASH), Movement.DEBIT, D("119000.00")),
                LineRequest(str(LedgerAccount.SALES_INCOME), Movement.CREDIT, D("100000.00")),
                LineRequest(str(LedgerAccount.VAT_PAYABLE), Movement.CREDIT, D("19000.00")),
            ],
        )

    def _post_many(self, barrier, numbers, errors):
        try:
            barrier.wait()
            for _ in range(ENTRIES_PER_THREAD):
                numbers.append(post_entry(self._request()).entry_number)
        except Exception as exc:
            errors.append(exc)
        finally:
            connection.close()

    def test_hundred_concurrent_posts_get_distinct_numbers(self):
        barrier = threading.Barrier(THREADS)
        numbers, errors = [], []
        threads = [
            threading.Thread(target=self._post_many, args=(barrier, numbers, errors))
            for _ in range(THREADS)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        total = THREADS * ENTRIES_PER_THREAD
        self.assertEqual(errors, [])
        self.assertEqual(len(numbers), total)
        self.assertEqual(len(set(numbers)), total)
        self.assertEqual(
            set(numbers),
            {
                format_document_number(
                    kind=DocumentSequence.Kind.JOURNAL_ENTRY,
                    year=self.entry_date.year,
                    value=n,
                )
                for n in range(1, total + 1)
            },
        )
        self.assertEqual(JournalEntry.objects.filter(tenant=self.tenant).count(), total)
