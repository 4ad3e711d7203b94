# cashbox/tests/test_cash_register.py

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounting.models import EntryType
from accounting.services.account_directory import LedgerAccount, provision_chart
from cashbox.models import CashMovement, CashRegister
from cashbox.services.cash_register_service import (
    CashRegisterError,
    RegisterNotOpenError,
    close_register,
    get_open_register,
    open_register,
    record_movement,
    register_summary,
)
from tenants.models import Tenant, TenantMembership

D = Decimal
MovementType = CashMovement.MovementType


class CashRegisterServiceTests(TestCase):
    """
    Cash register tests.

    GUARANTEES:
    - One OPEN register per tenant
    - Only CASH movements change the expected drawer balance
    - Closing records the counted difference and freezes the register
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        self.user = get_user_model().objects.create_user(username="cajero", password="x")

    def test_open_draws_session_number_and_opening_movement(self):
        register = open_register(tenant=self.tenant, user=self.user, opening_balance="50000")

        self.assertTrue(register.session_number.startswith("CASH-"))
        self.assertEqual(register.expected_balance, D("50000.00"))
        opening = register.movements.get()
        self.assertEqual(opening.movement_type, MovementType.OPENING)
        self.assertEqual(opening.balance_after, D("50000.00"))
        self.assertEqual(get_open_register(tenant=self.tenant), register)

    def test_only_one_open_register_per_tenant(self):
        open_register(tenant=self.tenant, opening_balance="0")

        with self.assertRaises(CashRegisterError):
            open_register(tenant=self.tenant, opening_balance="0")

        other = Tenant.objects.create(name="Tienda Dos", slug="tienda-dos")
        open_register(tenant=other, opening_balance="0")
        self.assertEqual(CashRegister.objects.filter(status="OPEN").count(), 2)

    def test_non_cash_movements_do_not_touch_the_drawer(self):
        register = open_register(tenant=self.tenant, opening_balance="10000")

        record_movement(register=register, movement_type=MovementType.DEPOSIT, amount="5000")
        record_movement(
            register=register,
            movement_type=MovementType.EXPENSE,
            amount="3000",
            payment_method="CARD",
        )
        record_movement(
            register=register,
            movement_type=MovementType.ADJUSTMENT,
            amount="500",
            direction=CashMovement.Direction.OUT,
        )

        register.refresh_from_db()
        self.assertEqual(register.expected_balance, D("14500.00"))

    def test_withdrawal_cannot_exceed_drawer_cash(self):
        register = open_register(tenant=self.tenant, opening_balance="1000")

        with self.assertRaises(CashRegisterError):
            record_movement(register=register, movement_type=MovementType.WITHDRAWAL, amount="1000.01")

        with self.assertRaises(CashRegisterError):
            record_movement(register=register, movement_type=MovementType.SALE, amount="10")

        with self.assertRaises(CashRegisterError):
            record_movement(register=register, movement_type=MovementType.ADJUSTMENT, amount="10")

    def test_close_records_difference_without_posting_when_disabled(self):
        register = open_register(tenant=self.tenant, opening_balance="20000")

        closed = close_register(register=register, counted_balance="19500", user=self.user)

        self.assertEqual(closed.status, CashRegister.Status.CLOSED)
        self.assertEqual(closed.difference, D("-500.00"))
        self.assertIsNone(closed.closing_entry)
        self.assertIsNone(get_open_register(tenant=self.tenant))

        summary = register_summary(closed)
        self.assertEqual(summary["difference"], "-500.00")
        self.assertEqual(summary["counted_balance"], "19500.00")

        with self.assertRaises(RegisterNotOpenError):
            close_register(register=closed, counted_balance="0")
        with self.assertRaises(RegisterNotOpenError):
            record_movement(register=closed, movement_type=MovementType.DEPOSIT, amount="1")

    def test_closed_register_is_immutable(self):
        register = close_register(
            register=open_register(tenant=self.tenant, opening_balance="0"),
            counted_balance="0",
        )

        register.notes = "edited"
        with self.assertRaises(ValidationError):
            register.save()
        with self.assertRaises(ValidationError):
            register.delete()


@override_settings(ACCOUNTING_POSTING_ENABLED=True)
class CashRegisterClosingEntryTests(TestCase):
    """
    GUARANTEES:
    - A shortage posts misc expense DEBIT vs cash CREDIT
    - A matching count posts nothing
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Tienda Uno", slug="tienda-uno")
        provision_chart(self.tenant)
        self.user = get_user_model().objects.create_user(username="admin", password="x")
        TenantMembership.objects.create(tenant=self.tenant, user=self.user)

        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT="tienda-uno")

    def test_shortage_posts_closing_entry(self):
        register = open_register(tenant=self.tenant, opening_balance="100000")

        closed = close_register(register=register, counted_balance="98000")

        entry = closed.closing_entry
        self.assertEqual(entry.entry_type, EntryType.CASH_REGISTER_CLOSE)
        self.assertEqual(entry.reference_number, closed.session_number)
        lines = {
            (ln.account.code, ln.movement): ln.amount
            for ln in entry.lines.select_related("account")
        }
        self.assertEqual(
            lines,
            {
                (LedgerAccount.MISC_EXPENSE.value, "DEBIT"): D("2000.00"),
                (LedgerAccount.CASH.value, "CREDIT"): D("2000.00"),
            },
        )

    def test_matching_count_posts_nothing(self):
        closed = close_register(
            register=open_register(tenant=self.tenant, opening_balance="5000"),
            counted_balance="5000",
        )
        self.assertIsNone(closed.closing_entry)

    def test_api_open_and_close(self):
        for codename in ("add_cashregister", "change_cashregister"):
            self.user.user_permissions.add(Permission.objects.get(codename=codename))
        self.user = get_user_model().objects.get(pk=self.user.pk)
        self.client.force_authenticate(self.user)

        res = self.client.post(
            "/api/cashbox/registers/open/", {"opening_balance": "30000"}, format="json"
        )
        self.assertEqual(res.status_code, 201, res.data)
        register_id = res.data["id"]

        res = self.client.post(
            "/api/cashbox/registers/open/", {"opening_balance": "0"}, format="json"
        )
        self.assertEqual(res.status_code, 400)

        res = self.client.post(
            f"/api/cashbox/registers/{register_id}/close/",
            {"counted_balance": "30500"},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["difference"], "500.00")
        self.assertTrue(res.data["closing_entry_number"].startswith("JE-"))
