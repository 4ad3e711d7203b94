# accounting/tests/test_journal_integrity.py

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models import EntryStatus, EntryType, JournalEntry, JournalEntryLine, Movement
from accounting.services.account_directory import LedgerAccount, provision_chart, set_active
from accounting.services.exceptions import (
    AccountNotFoundError,
    DuplicateReferenceError,
    EntryStateError,
    InvariantViolation,
    LedgerValidationError,
    UnbalancedEntryError,
)
from accounting.services.journal_entry_service import (
    EntryRequest,
    LineRequest,
    check_balance,
    confirm_entry,
    find_by_reference,
    list_entries,
    post_entry,
    reverse_entry,
    verify_entry,
)
from tenants.models import DocumentSequence, Tenant

D = Decimal


def _line(code, movement, amount, description=""):
    return LineRequest(account_code=str(code), movement=movement, amount=D(amount), description=description)


class JournalIntegrityTests(TestCase):
    """
    Ledger engine integrity tests.

    GUARANTEES:
    - Only balanced entries are written (all-or-nothing)
    - Entry numbers are drawn per tenant and never repeat
    - Confirmed entries are immutable; reversal nets to zero
    - verify_entry detects stored inconsistencies
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        provision_chart(self.tenant)

    def _cash_sale_request(self, **overrides):
        data = dict(
            tenant=self.tenant,
            entry_type=EntryType.SALE,
            entry_date=date(2026, 4, 10),
            description="Venta de prueba",
            lines=[
                _line(LedgerAccount.CASH, Movement.DEBIT, "119000.00"),
                _line(LedgerAccount.SALES_INCOME, Movement.CREDIT, "100000.00"),
                _line(LedgerAccount.VAT_PAYABLE, Movement.CREDIT, "19000.00"),
            ],
        )
        data.update(overrides)
        return EntryRequest(**data)

    # ======================================================
    # POSTING
    # ======================================================

    def test_balanced_entry_is_confirmed_with_ordered_lines(self):
        entry = post_entry(self._cash_sale_request())

        self.assertEqual(entry.status, EntryStatus.CONFIRMED)
        self.assertEqual(entry.entry_number, "JE-2026-00001")
        self.assertEqual(entry.total_debits, D("119000.00"))
        self.assertEqual(entry.total_credits, D("119000.00"))
        self.assertIsNotNone(entry.confirmed_at)

        lines = list(entry.lines.order_by("line_order").select_related("account"))
        self.assertEqual(
            [(ln.account.code, ln.movement, ln.amount) for ln in lines],
            [
                ("1105", Movement.DEBIT, D("119000.00")),
                ("4135", Movement.CREDIT, D("100000.00")),
                ("2408", Movement.CREDIT, D("19000.00")),
            ],
        )

    def test_unbalanced_entry_writes_nothing(self):
        request = self._cash_sale_request(
            lines=[
                _line(LedgerAccount.CASH, Movement.DEBIT, "119000.00"),
                _line(LedgerAccount.SALES_INCOME, Movement.CREDIT, "100000.00"),
            ]
        )

        with self.assertRaises(UnbalancedEntryError) as ctx:
            post_entry(request)

        self.assertEqual(ctx.exception.check.difference, D("19000.00"))
        self.assertFalse(ctx.exception.check.is_balanced)
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(JournalEntryLine.objects.count(), 0)
        self.assertFalse(DocumentSequence.objects.filter(tenant=self.tenant).exists())

    def test_one_cent_difference_is_rejected(self):
        request = self._cash_sale_request(
            lines=[
                _line(LedgerAccount.CASH, Movement.DEBIT, "100.01"),
                _line(LedgerAccount.SALES_INCOME, Movement.CREDIT, "100.00"),
            ]
        )
        with self.assertRaises(UnbalancedEntryError):
            post_entry(request)

    def test_check_balance_is_a_value(self):
        check = check_balance(
            [
                _line(LedgerAccount.CASH, Movement.DEBIT, "50"),
                _line(LedgerAccount.BANK, Movement.DEBIT, "50"),
                _line(LedgerAccount.SALES_INCOME, Movement.CREDIT, "100"),
            ]
        )
        self.assertTrue(check.is_balanced)
        self.assertEqual(check.total_debits, D("100.00"))

    def test_single_line_and_non_positive_amounts_rejected(self):
        with self.assertRaises(LedgerValidationError):
            post_entry(self._cash_sale_request(lines=[_line(LedgerAccount.CASH, Movement.DEBIT, "10")]))

        with self.assertRaises(LedgerValidationError):
            post_entry(
                self._cash_sale_request(
                    lines=[
                        _line(LedgerAccount.CASH, Movement.DEBIT, "0"),
                        _line(LedgerAccount.SALES_INCOME, Movement.CREDIT, "0"),
                    ]
                )
            )

        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_missing_or_inactive_account_rejected(self):
        request = self._cash_sale_request(
            lines=[
                _line("9999", Movement.DEBIT, "10"),
                _line(LedgerAccount.SALES_INCOME, Movement.CREDIT, "10"),
            ]
        )
        with self.assertRaises(AccountNotFoundError) as ctx:
            post_entry(request)
        self.assertEqual(ctx.exception.code, "9999")

        set_active(tenant=self.tenant, code=LedgerAccount.VAT_PAYABLE, is_active=False)
        with self.assertRaises(AccountNotFoundError) as ctx:
            post_entry(self._cash_sale_request())
        self.assertTrue(ctx.exception.inactive)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_accounts_of_another_tenant_are_not_visible(self):
        other = Tenant.objects.create(name="Tienda Dos", slug="tienda-dos")
        with self.assertRaises(AccountNotFoundError):
            post_entry(self._cash_sale_request(tenant=other))

    def test_duplicate_reference_rejected(self):
        post_entry(self._cash_sale_request(reference_type="Sale", reference_id="abc"))

        with self.assertRaises(DuplicateReferenceError):
            post_entry(self._cash_sale_request(reference_type="Sale", reference_id="abc"))

        self.assertEqual(JournalEntry.objects.count(), 1)
        self.assertIsNotNone(find_by_reference(tenant=self.tenant, reference_type="Sale", reference_id="abc"))

    # ======================================================
    # NUMBERING
    # ======================================================

    def test_hundred_entries_get_distinct_increasing_numbers(self):
        numbers = [post_entry(self._cash_sale_request()).entry_number for _ in range(100)]

        self.assertEqual(len(set(numbers)), 100)
        self.assertEqual(numbers[0], "JE-2026-00001")
        self.assertEqual(numbers[-1], "JE-2026-00100")
        self.assertEqual(numbers, sorted(numbers))

    def test_rejected_post_does_not_consume_a_number(self):
        post_entry(self._cash_sale_request())
        with self.assertRaises(UnbalancedEntryError):
            post_entry(
                self._cash_sale_request(
                    lines=[
                        _line(LedgerAccount.CASH, Movement.DEBIT, "1"),
                        _line(LedgerAccount.SALES_INCOME, Movement.CREDIT, "2"),
                    ]
                )
            )
        self.assertEqual(post_entry(self._cash_sale_request()).entry_number, "JE-2026-00002")

    # ======================================================
    # IMMUTABILITY
    # ======================================================

    def test_confirmed_entry_cannot_be_edited_or_deleted(self):
        entry = post_entry(self._cash_sale_request())

        entry.description = "edited"
        with self.assertRaises(ValidationError):
            entry.save()

        with self.assertRaises(ValidationError):
            JournalEntry.objects.get(pk=entry.pk).delete()

        line = entry.lines.first()
        with self.assertRaises(ValidationError):
            line.delete()
        line.amount = D("1.00")
        with self.assertRaises(ValidationError):
            line.save()

    def test_draft_then_confirm(self):
        entry = post_entry(self._cash_sale_request(draft=True))
        self.assertEqual(entry.status, EntryStatus.DRAFT)
        self.assertIsNone(entry.confirmed_at)

        confirmed = confirm_entry(entry=entry)
        self.assertEqual(confirmed.status, EntryStatus.CONFIRMED)
        self.assertIsNotNone(confirmed.confirmed_at)

        with self.assertRaises(EntryStateError):
            confirm_entry(entry=confirmed)

    # ======================================================
    # REVERSAL
    # ======================================================

    def test_reversal_round_trip_nets_to_zero(self):
        original = post_entry(self._cash_sale_request())
        reversal = reverse_entry(entry=original, reason="Venta anulada")

        original.refresh_from_db()
        self.assertEqual(original.status, EntryStatus.CANCELLED)
        self.assertEqual(original.reversal_entry_id, reversal.pk)
        self.assertEqual(original.cancellation_reason, "Venta anulada")
        self.assertEqual(reversal.reversal_of_id, original.pk)
        self.assertEqual(reversal.status, EntryStatus.CONFIRMED)
        self.assertEqual(reversal.entry_type, original.entry_type)

        net = defaultdict(Decimal)
        for line in JournalEntryLine.objects.filter(entry__in=[original, reversal]).select_related("account"):
            sign = 1 if line.movement == Movement.DEBIT else -1
            net[line.account.code] += sign * line.amount
        self.assertTrue(all(v == 0 for v in net.values()))

        # Original lines are untouched
        self.assertEqual(original.lines.filter(movement=Movement.DEBIT).get().account.code, "1105")

    def test_cannot_reverse_twice(self):
        original = post_entry(self._cash_sale_request())
        reverse_entry(entry=original)

        with self.assertRaises(EntryStateError):
            reverse_entry(entry=original)

    def test_reversal_still_works_after_account_deactivation(self):
        original = post_entry(self._cash_sale_request())
        set_active(tenant=self.tenant, code=LedgerAccount.VAT_PAYABLE, is_active=False)

        reversal = reverse_entry(entry=original)

        self.assertEqual(reversal.total_debits, D("119000.00"))

    # ======================================================
    # READS + VERIFICATION
    # ======================================================

    def test_list_entries_filters(self):
        post_entry(self._cash_sale_request())
        post_entry(self._cash_sale_request(entry_type=EntryType.ADJUSTMENT, entry_date=date(2026, 5, 1)))

        self.assertEqual(list_entries(tenant=self.tenant).count(), 2)
        self.assertEqual(list_entries(tenant=self.tenant, entry_type=EntryType.ADJUSTMENT).count(), 1)
        self.assertEqual(list_entries(tenant=self.tenant, date_from=date(2026, 4, 15)).count(), 1)

    def test_every_posted_entry_is_balanced(self):
        for _ in range(3):
            post_entry(self._cash_sale_request())
        reverse_entry(entry=JournalEntry.objects.first())

        for entry in JournalEntry.objects.all():
            check = verify_entry(entry)
            self.assertTrue(check.is_balanced)

    def test_verify_entry_detects_tampering(self):
        entry = post_entry(self._cash_sale_request())
        JournalEntryLine.objects.filter(entry=entry, movement=Movement.DEBIT).update(amount=D("1.00"))

        with self.assertRaises(InvariantViolation):
            verify_entry(entry)
