# credits/tests/test_credit_subledger.py

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from accounting.models import JournalEntry
from accounting.services.account_directory import LedgerAccount, provision_chart
from accounting.services.balance_service import get_balance_by_code
from credits.models import CreditPaymentAllocation, Customer, CustomerCredit
from credits.services.credit_subledger import (
    allocate_payment,
    cancel_credits_for_reference,
    check_credit,
    credit_summary,
    extend,
)
from credits.services.exceptions import (
    CreditLimitExceededError,
    CreditPaymentError,
    CreditStateError,
)
from tenants.models import Tenant, TenantMembership

D = Decimal
Status = CustomerCredit.Status


class CreditSubledgerTests(TestCase):
    """
    Credit subledger tests.

    GUARANTEES:
    - Credit never exceeds the customer limit
    - Payments are applied oldest-due first, excess is reported
    - Balance/status are recomputed on every save
    - OVERDUE is evaluated lazily on load
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(
            name="Tienda Uno", slug="tienda-uno", default_credit_term_days=15
        )
        self.customer = Customer.objects.create(
            tenant=self.tenant,
            name="Doña Marta",
            document_number="52000111",
            credit_limit=D("1000000.00"),
        )

    def _extend(self, amount, ref, due_date=None):
        return extend(
            customer=self.customer,
            amount=amount,
            reference_type="Sale",
            reference_id=ref,
            reference_number=f"POS-{ref}",
            due_date=due_date,
        )

    # ======================================================
    # EXTEND
    # ======================================================

    def test_extend_uses_tenant_term_by_default(self):
        credit = self._extend("250000", "1")

        self.assertEqual(credit.status, Status.PENDING)
        self.assertEqual(credit.balance, D("250000.00"))
        self.assertEqual(credit.due_date, timezone.localdate() + timedelta(days=15))
        self.assertEqual(self.customer.credit_used, D("250000.00"))

    def test_customer_term_overrides_tenant_default(self):
        self.customer.credit_term_days = 45
        self.customer.save()

        credit = self._extend("1000", "1")
        self.assertEqual(credit.due_date, timezone.localdate() + timedelta(days=45))

    def test_limit_is_enforced_without_mutation(self):
        self._extend("900000", "1")

        check = check_credit(customer=self.customer, amount="100001")
        self.assertFalse(check.allowed)
        self.assertEqual(check.available, D("100000.00"))

        with self.assertRaises(CreditLimitExceededError) as ctx:
            self._extend("100001", "2")

        self.assertEqual(ctx.exception.check.requested, D("100001.00"))
        self.assertEqual(CustomerCredit.objects.filter(customer=self.customer).count(), 1)

        # exactly at the limit is allowed
        self._extend("100000", "3")
        self.assertEqual(self.customer.credit_used, D("1000000.00"))

    def test_extend_is_idempotent_per_reference(self):
        first = self._extend("5000", "abc")
        again = self._extend("5000", "abc")

        self.assertEqual(first.pk, again.pk)
        self.assertEqual(CustomerCredit.objects.count(), 1)

    # ======================================================
    # FIFO PAYMENTS
    # ======================================================

    def test_payment_of_400_over_300_and_500(self):
        today = timezone.localdate()
        older = self._extend("300", "1", due_date=today + timedelta(days=5))
        newer = self._extend("500", "2", due_date=today + timedelta(days=20))

        result = allocate_payment(customer=self.customer, amount="400")

        older.refresh_from_db()
        newer.refresh_from_db()

        self.assertEqual(older.status, Status.PAID)
        self.assertEqual(older.balance, D("0.00"))
        self.assertIsNotNone(older.paid_at)

        self.assertEqual(newer.status, Status.PARTIAL)
        self.assertEqual(newer.paid_amount, D("100.00"))
        self.assertEqual(newer.balance, D("400.00"))

        self.assertEqual(result.applied, D("400.00"))
        self.assertEqual(result.excess, D("0.00"))
        self.assertEqual(
            [(a.credit_id, a.amount) for a in result.allocations],
            [(older.pk, D("300.00")), (newer.pk, D("100.00"))],
        )
        self.assertEqual(self.customer.credit_used, D("400.00"))

    def test_due_date_order_beats_creation_order(self):
        today = timezone.localdate()
        late_due = self._extend("200", "1", due_date=today + timedelta(days=30))
        early_due = self._extend("200", "2", due_date=today + timedelta(days=1))

        allocate_payment(customer=self.customer, amount="200")

        early_due.refresh_from_db()
        late_due.refresh_from_db()
        self.assertEqual(early_due.status, Status.PAID)
        self.assertEqual(late_due.status, Status.PENDING)

    def test_excess_is_reported(self):
        self._extend("300", "1")

        result = allocate_payment(customer=self.customer, amount="350")

        self.assertEqual(result.applied, D("300.00"))
        self.assertEqual(result.excess, D("50.00"))
        self.assertEqual(CreditPaymentAllocation.objects.count(), 1)

    def test_payment_without_open_credits_is_rejected(self):
        with self.assertRaises(CreditPaymentError):
            allocate_payment(customer=self.customer, amount="10")

        with self.assertRaises(CreditPaymentError):
            allocate_payment(customer=self.customer, amount="0")

    # ======================================================
    # OVERDUE (lazy)
    # ======================================================

    def test_overdue_is_evaluated_on_load(self):
        credit = self._extend("1000", "1", due_date=timezone.localdate() + timedelta(days=3))
        CustomerCredit.objects.filter(pk=credit.pk).update(
            due_date=timezone.localdate() - timedelta(days=2)
        )

        loaded = CustomerCredit.objects.get(pk=credit.pk)
        self.assertEqual(loaded.status, Status.OVERDUE)
        self.assertEqual(loaded.days_overdue, 2)

        # Persisted only on the next save
        stored = CustomerCredit.objects.filter(pk=credit.pk).values_list("status", flat=True).get()
        self.assertEqual(stored, Status.PENDING)

        loaded.save()
        stored = CustomerCredit.objects.filter(pk=credit.pk).values_list("status", flat=True).get()
        self.assertEqual(stored, Status.OVERDUE)

        summary = credit_summary(tenant=self.tenant)
        self.assertEqual(summary["overdue_count"], 1)
        self.assertEqual(summary["overdue_balance"], "1000.00")

    def test_paid_credit_is_never_overdue(self):
        credit = self._extend("100", "1", due_date=date(2020, 1, 1))
        allocate_payment(customer=self.customer, amount="100")

        credit.refresh_from_db()
        self.assertEqual(credit.status, Status.PAID)
        self.assertEqual(credit.days_overdue, 0)

    # ======================================================
    # CANCELLATION
    # ======================================================

    def test_cancel_for_reference_releases_the_limit(self):
        self._extend("700", "sale-1")

        cancelled = cancel_credits_for_reference(
            tenant=self.tenant, reference_type="Sale", reference_id="sale-1", reason="Anulada"
        )

        self.assertEqual(cancelled, 1)
        self.assertEqual(self.customer.credit_used, D("0.00"))
        self.assertEqual(CustomerCredit.objects.get().status, Status.CANCELLED)

        # The reference is free again after cancellation
        self._extend("700", "sale-1")
        self.assertEqual(CustomerCredit.objects.count(), 2)

    def test_credit_with_payments_cannot_be_cancelled(self):
        self._extend("700", "sale-1")
        allocate_payment(customer=self.customer, amount="100")

        with self.assertRaises(CreditStateError):
            cancel_credits_for_reference(
                tenant=self.tenant, reference_type="Sale", reference_id="sale-1"
            )


@override_settings(ACCOUNTING_POSTING_ENABLED=True)
class CreditPaymentPostingTests(TestCase):
    """
    GUARANTEES:
    - A payment posts cash/bank DEBIT vs receivables CREDIT for the applied amount
    - A withheld part debits withholding receivable instead of cash
    - The API requires credits.add_creditpayment
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        provision_chart(self.tenant)
        self.customer = Customer.objects.create(
            tenant=self.tenant, name="Don Pedro", credit_limit=D("500000.00")
        )
        extend(
            customer=self.customer,
            amount="120000",
            reference_type="Sale",
            reference_id="s-1",
        )

        self.user = get_user_model().objects.create_user(username="cajero", password="x")
        TenantMembership.objects.create(tenant=self.tenant, user=self.user)
        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT="tienda-uno")

    def test_payment_posts_applied_amount_only(self):
        result = allocate_payment(customer=self.customer, amount="150000", payment_method="NEQUI")

        entry = result.payment.journal_entry
        self.assertIsNotNone(entry)
        self.assertEqual(entry.total_debits, D("120000.00"))
        self.assertEqual(entry.reference_type, "CreditPayment")
        self.assertEqual(
            get_balance_by_code(tenant=self.tenant, code=LedgerAccount.ACCOUNTS_RECEIVABLE),
            D("-120000.00"),
        )

    def test_api_payment(self):
        url = f"/api/credits/customers/{self.customer.pk}/payments/"

        res = self.client.post(url, {"amount": "20000"}, format="json")
        self.assertEqual(res.status_code, 403)

        self.user.user_permissions.add(Permission.objects.get(codename="add_creditpayment"))
        self.user = get_user_model().objects.get(pk=self.user.pk)
        self.client.force_authenticate(self.user)

        res = self.client.post(url, {"amount": "20000", "payment_method": "CASH"}, format="json")
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["applied_amount"], "20000.00")
        self.assertEqual(JournalEntry.objects.filter(tenant=self.tenant).count(), 1)

        res = self.client.get(f"/api/credits/customers/{self.customer.pk}/credits/?status=open")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data[0]["balance"], "100000.00")

    def test_payment_with_withholding_certificate(self):
        result = allocate_payment(
            customer=self.customer,
            amount="120000",
            payment_method="BANK",
            withholding_amount="3000",
        )

        payment = result.payment
        self.assertEqual(payment.withholding_amount, D("3000.00"))
        self.assertEqual(payment.applied_amount, D("120000.00"))
        self.assertEqual(
            [
                (ln.account.code, ln.movement, ln.amount)
                for ln in payment.journal_entry.lines.select_related("account").order_by("line_order")
            ],
            [
                (LedgerAccount.BANK, "DEBIT", D("117000.00")),
                (LedgerAccount.WITHHOLDING_RECEIVABLE, "DEBIT", D("3000.00")),
                (LedgerAccount.ACCOUNTS_RECEIVABLE, "CREDIT", D("120000.00")),
            ],
        )
        self.assertEqual(
            get_balance_by_code(tenant=self.tenant, code=LedgerAccount.WITHHOLDING_RECEIVABLE),
            D("3000.00"),
        )

    def test_withholding_must_be_applied_to_credits(self):
        with self.assertRaises(CreditPaymentError):
            allocate_payment(customer=self.customer, amount="150000", withholding_amount="140000")

        credit = CustomerCredit.objects.get(customer=self.customer)
        self.assertEqual(credit.paid_amount, D("0.00"))
        self.assertFalse(JournalEntry.objects.filter(tenant=self.tenant).exists())
