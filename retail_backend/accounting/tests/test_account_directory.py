# accounting/tests/test_account_directory.py

from __future__ import annotations

from io import StringIO

from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase

from accounting.models import (
    Account,
    AccountNature,
    AccountType,
    ExpenseCategory,
    ExpensePaymentMethod,
    PaymentMethod,
)
from accounting.services import account_directory
from accounting.services.account_directory import (
    EXPENSE_CATEGORY_ACCOUNTS,
    EXPENSE_PAYMENT_ACCOUNTS,
    PAYMENT_METHOD_ACCOUNTS,
    RETAIL_CHART,
    LedgerAccount,
    assert_exhaustive,
)
from accounting.services.exceptions import AccountNotFoundError
from tenants.models import Tenant


class CodeContractTests(SimpleTestCase):
    """
    GUARANTEES:
    - Every payment method / expense category maps to a seeded account
    - A mapping missing an enum member is a configuration error
    """

    def test_mappings_are_exhaustive(self):
        self.assertEqual(set(PAYMENT_METHOD_ACCOUNTS), set(PaymentMethod.values))
        self.assertEqual(set(EXPENSE_PAYMENT_ACCOUNTS), set(ExpensePaymentMethod.values))
        self.assertEqual(set(EXPENSE_CATEGORY_ACCOUNTS), set(ExpenseCategory.values))

    def test_mapped_codes_exist_in_the_seed_chart(self):
        seeded = {a.code for a in RETAIL_CHART}
        for mapping in (PAYMENT_METHOD_ACCOUNTS, EXPENSE_PAYMENT_ACCOUNTS, EXPENSE_CATEGORY_ACCOUNTS):
            for account in mapping.values():
                self.assertIn(account.value, seeded)

    def test_missing_member_is_improperly_configured(self):
        partial = {PaymentMethod.CASH: LedgerAccount.CASH}
        with self.assertRaises(ImproperlyConfigured):
            assert_exhaustive(partial, PaymentMethod, "partial")

    def test_fixed_codes(self):
        self.assertEqual(LedgerAccount.CASH, "1105")
        self.assertEqual(LedgerAccount.BANK, "1110")
        self.assertEqual(LedgerAccount.ACCOUNTS_RECEIVABLE, "1305")
        self.assertEqual(LedgerAccount.INVENTORY, "1435")
        self.assertEqual(LedgerAccount.VAT_PAYABLE, "2408")
        self.assertEqual(LedgerAccount.SALES_INCOME, "4135")
        self.assertEqual(LedgerAccount.COST_OF_SALES, "6135")
        self.assertEqual(account_directory.account_for_payment_method("NEQUI"), LedgerAccount.BANK)
        self.assertEqual(account_directory.account_for_expense_category("UTILITIES"), LedgerAccount.SERVICES)

    def test_nature_follows_account_class(self):
        by_code = {a.code: a for a in RETAIL_CHART}
        self.assertEqual(by_code["1105"].nature, AccountNature.DEBIT)
        self.assertEqual(by_code["2408"].nature, AccountNature.CREDIT)
        self.assertEqual(by_code["4135"].account_type, AccountType.INCOME)
        self.assertEqual(by_code["4175"].nature, AccountNature.DEBIT)
        self.assertEqual(by_code["6135"].account_type, AccountType.COST)


class AccountDirectoryTests(TestCase):
    """
    GUARANTEES:
    - resolve/resolve_many are tenant-scoped and fail on missing or inactive codes
    - Activation toggles are the only mutation; accounts are never deleted
    - Provisioning is idempotent
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        account_directory.provision_chart(self.tenant)

    def test_provision_is_idempotent(self):
        created, existing = account_directory.provision_chart(self.tenant)
        self.assertEqual(created, 0)
        self.assertEqual(existing, len(RETAIL_CHART))
        self.assertEqual(Account.objects.filter(tenant=self.tenant).count(), len(RETAIL_CHART))

    def test_resolve_and_resolve_many(self):
        cash = account_directory.resolve(self.tenant, LedgerAccount.CASH)
        self.assertEqual(cash.code, "1105")

        found = account_directory.resolve_many(self.tenant, ["1105", "2408", "1105"])
        self.assertEqual(set(found), {"1105", "2408"})

        with self.assertRaises(AccountNotFoundError):
            account_directory.resolve_many(self.tenant, ["1105", "0000"])

    def test_deactivated_account_does_not_resolve_unless_asked(self):
        account_directory.set_active(tenant=self.tenant, code="1110", is_active=False)

        with self.assertRaises(AccountNotFoundError):
            account_directory.resolve(self.tenant, "1110")

        self.assertFalse(account_directory.resolve(self.tenant, "1110", require_active=False).is_active)

        account_directory.set_active(tenant=self.tenant, code="1110", is_active=True)
        self.assertTrue(account_directory.resolve(self.tenant, "1110").is_active)

    def test_other_tenant_is_isolated(self):
        other = Tenant.objects.create(name="Tienda Dos", slug="tienda-dos")
        with self.assertRaises(AccountNotFoundError):
            account_directory.resolve(other, "1105")

    def test_accounts_are_never_deleted_and_code_is_fixed(self):
        account = account_directory.resolve(self.tenant, "1105")
        with self.assertRaises(ValidationError):
            account.delete()

        account.code = "1106"
        with self.assertRaises(ValidationError):
            account.save()

    def test_seed_command(self):
        other = Tenant.objects.create(name="Tienda Dos", slug="tienda-dos")
        out = StringIO()

        call_command("seed_retail_chart", tenant="tienda-dos", stdout=out)

        self.assertEqual(Account.objects.filter(tenant=other).count(), len(RETAIL_CHART))
        self.assertIn(f"{len(RETAIL_CHART)} new accounts", out.getvalue())
