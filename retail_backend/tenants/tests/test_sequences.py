# tenants/tests/test_sequences.py

from __future__ import annotations

from datetime import date

from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import TestCase

from tenants.models import DocumentSequence, Tenant
from tenants.services.sequences import (
    SequenceError,
    format_document_number,
    next_document_number,
)


class DocumentSequenceTests(TestCase):
    """
    Tests for per-tenant document numbering.

    GUARANTEES:
    - Numbers are strictly increasing per (tenant, kind, year)
    - Tenants and years never share counters
    - Counters cannot move backwards or be deleted
    - Numbers can only be drawn inside a transaction
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        self.other = Tenant.objects.create(name="Tienda Dos", slug="tienda-dos")

    def _draw(self, tenant, kind, at=None):
        with transaction.atomic():
            return next_document_number(tenant=tenant, kind=kind, at=at)

    # ======================================================
    # FORMAT
    # ======================================================

    def test_format_uses_prefix_year_and_padding(self):
        self.assertEqual(
            format_document_number(kind=DocumentSequence.Kind.JOURNAL_ENTRY, year=2026, value=7),
            "JE-2026-00007",
        )
        self.assertEqual(
            format_document_number(kind=DocumentSequence.Kind.SALE, year=2026, value=12345),
            "POS-2026-12345",
        )

    # ======================================================
    # MONOTONIC
    # ======================================================

    def test_numbers_increase_per_tenant_and_kind(self):
        at = date(2026, 3, 1)
        first = self._draw(self.tenant, DocumentSequence.Kind.SALE, at)
        second = self._draw(self.tenant, DocumentSequence.Kind.SALE, at)
        other_first = self._draw(self.other, DocumentSequence.Kind.SALE, at)
        je_first = self._draw(self.tenant, DocumentSequence.Kind.JOURNAL_ENTRY, at)

        self.assertEqual(first.formatted, "POS-2026-00001")
        self.assertEqual(second.formatted, "POS-2026-00002")
        self.assertEqual(other_first.formatted, "POS-2026-00001")
        self.assertEqual(je_first.formatted, "JE-2026-00001")

    def test_new_year_starts_a_new_counter(self):
        self._draw(self.tenant, DocumentSequence.Kind.SALE, date(2025, 12, 31))
        self._draw(self.tenant, DocumentSequence.Kind.SALE, date(2025, 12, 31))
        jan = self._draw(self.tenant, DocumentSequence.Kind.SALE, date(2026, 1, 1))

        self.assertEqual(jan.formatted, "POS-2026-00001")

    def test_rolled_back_number_is_not_reused(self):
        at = date(2026, 5, 5)
        self._draw(self.tenant, DocumentSequence.Kind.SALE, at)

        try:
            with transaction.atomic():
                next_document_number(tenant=self.tenant, kind=DocumentSequence.Kind.SALE, at=at)
                raise RuntimeError("abort after drawing")
        except RuntimeError:
            pass

        nxt = self._draw(self.tenant, DocumentSequence.Kind.SALE, at)
        # The aborted draw rolled back with its transaction; the next commit stays monotonic.
        self.assertEqual(nxt.value, 2)

    # ======================================================
    # GUARDRAILS
    # ======================================================

    def test_requires_transaction(self):
        with self.assertRaises(SequenceError):
            # TestCase wraps every test in atomic; simulate autocommit mode.
            connection = transaction.get_connection()
            in_block = connection.in_atomic_block
            connection.in_atomic_block = False
            try:
                next_document_number(tenant=self.tenant, kind=DocumentSequence.Kind.SALE)
            finally:
                connection.in_atomic_block = in_block

    def test_unknown_kind_rejected(self):
        with self.assertRaises(SequenceError):
            self._draw(self.tenant, "INVOICE")

    def test_counter_cannot_move_backwards(self):
        self._draw(self.tenant, DocumentSequence.Kind.SALE, date(2026, 1, 1))
        self._draw(self.tenant, DocumentSequence.Kind.SALE, date(2026, 1, 1))
        seq = DocumentSequence.objects.get(tenant=self.tenant, kind=DocumentSequence.Kind.SALE)

        seq.last_value = 1
        with self.assertRaises(ValidationError):
            seq.save()

        with self.assertRaises(ValidationError):
            seq.delete()
