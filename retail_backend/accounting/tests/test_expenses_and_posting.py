# accounting/tests/test_expenses_and_posting.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from accounting.models import EntryType, Expense, JournalEntry, Movement
from accounting.services.account_directory import LedgerAccount, provision_chart, set_active
from accounting.services.balance_service import (
    BalanceServiceError,
    get_balance_by_code,
    trial_balance,
    vat_position,
)
from accounting.services.exceptions import AccountNotFoundError, LedgerValidationError
from accounting.services.expense_service import ExpensePostingError, create_expense_and_post
from accounting.services.journal_entry_service import (
    EntryRequest,
    LineRequest,
    post_entry,
    reverse_entry,
)
from accounting.services.posting import (
    post_purchase_to_ledger,
    post_register_discrepancy_to_ledger,
)
from tenants.models import Tenant

D = Decimal


def _lines(entry):
    return [
        (ln.account.code, ln.movement, ln.amount)
        for ln in entry.lines.select_related("account").order_by("line_order")
    ]


class ExpensePostingTests(TestCase):
    """
    GUARANTEES:
    - Expense + its journal entry are created together or not at all
    - Deductible VAT debits the VAT payable account
    - Payment method decides the credited account
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        provision_chart(self.tenant)
        self.user = get_user_model().objects.create_user(username="owner", password="x")

    def test_utilities_paid_by_bank(self):
        expense = create_expense_and_post(
            tenant=self.tenant,
            user=self.user,
            category="UTILITIES",
            subtotal="200000",
            tax_amount="38000",
            payment_method="BANK",
            expense_date=date(2026, 6, 1),
        )

        entry = expense.journal_entry
        self.assertTrue(expense.is_posted)
        self.assertEqual(entry.entry_type, EntryType.EXPENSE)
        self.assertEqual(
            _lines(entry),
            [
                ("5135", Movement.DEBIT, D("200000.00")),
                ("2408", Movement.DEBIT, D("38000.00")),
                ("1110", Movement.CREDIT, D("238000.00")),
            ],
        )
        self.assertEqual(entry.total_debits, entry.total_credits)
        self.assertEqual(expense.total_amount, D("238000.00"))

    def test_credit_expense_without_tax_goes_to_payables(self):
        expense = create_expense_and_post(
            tenant=self.tenant,
            user=self.user,
            category="RENT",
            subtotal="1500000",
            payment_method="CREDIT",
        )

        self.assertEqual(
            _lines(expense.journal_entry),
            [
                ("5120", Movement.DEBIT, D("1500000.00")),
                ("2335", Movement.CREDIT, D("1500000.00")),
            ],
        )

    def test_missing_account_rolls_back_the_expense(self):
        set_active(tenant=self.tenant, code=LedgerAccount.RENT, is_active=False)

        with self.assertRaises(AccountNotFoundError):
            create_expense_and_post(
                tenant=self.tenant, user=self.user, category="RENT", subtotal="10"
            )

        self.assertEqual(Expense.objects.count(), 0)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_invalid_payload(self):
        with self.assertRaises(ExpensePostingError):
            create_expense_and_post(tenant=self.tenant, user=self.user, category="RENT", subtotal="0")
        with self.assertRaises(ExpensePostingError):
            create_expense_and_post(tenant=self.tenant, user=self.user, category="YACHT", subtotal="10")


class PostingAdapterTests(TestCase):
    """
    GUARANTEES:
    - Purchases debit inventory + VAT and credit suppliers (or cash/bank)
    - Register discrepancies hit misc income / misc expense
    - Balances follow account nature; reversals net out in the trial balance
    - Withheld tax is split out of the supplier/customer settlement; VAT position nets generated vs deductible
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        provision_chart(self.tenant)

    def test_purchase_on_credit(self):
        entry = post_purchase_to_ledger(
            tenant=self.tenant,
            purchase_id=7,
            purchase_number="FC-7",
            subtotal="500000",
            tax_amount="95000",
        )

        self.assertEqual(
            _lines(entry),
            [
                ("1435", Movement.DEBIT, D("500000.00")),
                ("2408", Movement.DEBIT, D("95000.00")),
                ("2205", Movement.CREDIT, D("595000.00")),
            ],
        )

    def test_purchase_paid_in_cash(self):
        entry = post_purchase_to_ledger(
            tenant=self.tenant,
            purchase_id=8,
            purchase_number="FC-8",
            subtotal="1000",
            payment_method="CASH",
        )
        self.assertEqual(_lines(entry)[-1], ("1105", Movement.CREDIT, D("1000.00")))

    def test_register_shortage_and_surplus(self):
        now = timezone.now()
        shortage = SimpleNamespace(
            pk=1, tenant=self.tenant, difference=D("-500"), session_number="CR-1", closed_at=now
        )
        surplus = SimpleNamespace(
            pk=2, tenant=self.tenant, difference=D("200"), session_number="CR-2", closed_at=now
        )
        matched = SimpleNamespace(
            pk=3, tenant=self.tenant, difference=D("0"), session_number="CR-3", closed_at=now
        )

        self.assertEqual(
            _lines(post_register_discrepancy_to_ledger(register=shortage)),
            [("5195", Movement.DEBIT, D("500.00")), ("1105", Movement.CREDIT, D("500.00"))],
        )
        self.assertEqual(
            _lines(post_register_discrepancy_to_ledger(register=surplus)),
            [("1105", Movement.DEBIT, D("200.00")), ("4295", Movement.CREDIT, D("200.00"))],
        )
        self.assertIsNone(post_register_discrepancy_to_ledger(register=matched))

    def test_balances_and_trial_balance(self):
        entry = post_purchase_to_ledger(
            tenant=self.tenant,
            purchase_id=9,
            purchase_number="FC-9",
            subtotal="1000",
            tax_amount="190",
            payment_method="BANK",
        )

        self.assertEqual(get_balance_by_code(tenant=self.tenant, code="1435"), D("1000.00"))
        self.assertEqual(get_balance_by_code(tenant=self.tenant, code="1110"), D("-1190.00"))

        tb = trial_balance(tenant=self.tenant)
        self.assertTrue(tb["totals"]["balanced"])
        self.assertEqual(tb["totals"]["debit"], "1190.00")

        reverse_entry(entry=entry)
        self.assertEqual(get_balance_by_code(tenant=self.tenant, code="1435"), D("0.00"))
        self.assertTrue(trial_balance(tenant=self.tenant)["totals"]["balanced"])

    # ======================================================
    # WITHHOLDING + VAT POSITION
    # ======================================================

    def test_purchase_with_withholding_credits_withholding_payable(self):
        entry = post_purchase_to_ledger(
            tenant=self.tenant,
            purchase_id=10,
            purchase_number="FC-10",
            subtotal="1000000",
            tax_amount="190000",
            withholding_amount="25000",
        )

        self.assertEqual(
            _lines(entry),
            [
                ("1435", Movement.DEBIT, D("1000000.00")),
                ("2408", Movement.DEBIT, D("190000.00")),
                ("2365", Movement.CREDIT, D("25000.00")),
                ("2205", Movement.CREDIT, D("1165000.00")),
            ],
        )
        self.assertEqual(entry.total_debits, entry.total_credits)

    def test_withholding_above_subtotal_is_rejected(self):
        with self.assertRaises(LedgerValidationError):
            post_purchase_to_ledger(
                tenant=self.tenant,
                purchase_id=11,
                purchase_number="FC-11",
                subtotal="1000",
                withholding_amount="1000.01",
            )
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_vat_position_nets_generated_against_deductible(self):
        sale = post_entry(
            EntryRequest(
                tenant=self.tenant,
                entry_type=EntryType.SALE,
                entry_date=date(2026, 5, 10),
                description="Venta",
                lines=[
                    LineRequest(LedgerAccount.CASH, Movement.DEBIT, D("119000")),
                    LineRequest(LedgerAccount.SALES_INCOME, Movement.CREDIT, D("100000")),
                    LineRequest(LedgerAccount.VAT_PAYABLE, Movement.CREDIT, D("19000")),
                ],
            )
        )
        post_purchase_to_ledger(
            tenant=self.tenant,
            purchase_id=12,
            purchase_number="FC-12",
            subtotal="50000",
            tax_amount="9500",
            purchase_date=date(2026, 5, 11),
        )

        position = vat_position(tenant=self.tenant)
        self.assertEqual(position["generated"], "19000.00")
        self.assertEqual(position["deductible"], "9500.00")
        self.assertEqual(position["balance"], "9500.00")
        self.assertEqual(position["position"], "PAYABLE")

        # An annulled sale is neither generated nor deductible VAT.
        reverse_entry(entry=sale)
        position = vat_position(tenant=self.tenant)
        self.assertEqual(position["generated"], "0.00")
        self.assertEqual(position["deductible"], "9500.00")
        self.assertEqual(position["position"], "RECEIVABLE")

    def test_vat_position_window(self):
        post_purchase_to_ledger(
            tenant=self.tenant,
            purchase_id=13,
            purchase_number="FC-13",
            subtotal="1000",
            tax_amount="190",
            purchase_date=date(2026, 3, 1),
        )

        april = vat_position(tenant=self.tenant, date_from=date(2026, 4, 1), date_to=date(2026, 4, 30))
        march = vat_position(tenant=self.tenant, date_from=date(2026, 3, 1), date_to=date(2026, 3, 31))

        self.assertEqual(april["deductible"], "0.00")
        self.assertEqual(march["deductible"], "190.00")
        with self.assertRaises(BalanceServiceError):
            vat_position(tenant=self.tenant, date_from=date(2026, 4, 2), date_to=date(2026, 4, 1))
