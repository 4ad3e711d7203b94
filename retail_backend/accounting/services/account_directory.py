# accounting/services/account_directory.py

"""
======================================================
PATH: accounting/services/account_directory.py
======================================================
ACCOUNT DIRECTORY (AUTHORITATIVE)

This module answers ONE question:
"Which account does this code refer to, for this tenant?"

The codes are a fixed external contract (LedgerAccount + RETAIL_CHART).
Callers never hard-code strings: they use LedgerAccount members or the
exhaustive PAYMENT_METHOD / EXPENSE_CATEGORY maps below.

Design goals:
- deterministic
- tenant-safe
- hard-fail on missing setup (so we don't post to wrong accounts)
- adding an enum member without mapping it fails at import time
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from django.core.exceptions import ImproperlyConfigured
from django.db import models, transaction

from accounting.models.account import Account
from accounting.models.choices import (
    AccountNature,
    AccountType,
    ExpenseCategory,
    ExpensePaymentMethod,
    PaymentMethod,
)
from accounting.services.exceptions import AccountNotFoundError

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# CODE CONTRACT
# ------------------------------------------------------------


class LedgerAccount(models.TextChoices):
    CASH = "1105", "Caja"
    BANK = "1110", "Bancos"
    ACCOUNTS_RECEIVABLE = "1305", "Clientes"
    WITHHOLDING_RECEIVABLE = "1355", "Anticipo de impuestos (retenciones a favor)"
    INVENTORY = "1435", "Mercancías no fabricadas por la empresa"
    ACCOUNTS_PAYABLE = "2205", "Proveedores nacionales"
    EXPENSES_PAYABLE = "2335", "Costos y gastos por pagar"
    WITHHOLDING_PAYABLE = "2365", "Retención en la fuente por pagar"
    VAT_PAYABLE = "2408", "Impuesto sobre las ventas por pagar (IVA)"
    EQUITY_CAPITAL = "3115", "Aportes sociales"
    SALES_INCOME = "4135", "Comercio al por mayor y al por menor"
    SALES_RETURNS = "4175", "Devoluciones en ventas"
    MISC_INCOME = "4295", "Ingresos diversos"
    PAYROLL = "5105", "Gastos de personal"
    FEES = "5110", "Honorarios"
    TAXES = "5115", "Impuestos"
    RENT = "5120", "Arrendamientos"
    INSURANCE = "5130", "Seguros"
    SERVICES = "5135", "Servicios"
    LEGAL = "5140", "Gastos legales"
    MAINTENANCE = "5145", "Mantenimiento y reparaciones"
    INSTALLATION = "5150", "Adecuación e instalación"
    TRAVEL = "5155", "Gastos de viaje"
    DEPRECIATION = "5160", "Depreciaciones"
    MISC_EXPENSE = "5195", "Gastos diversos"
    SALES_STAFF = "5205", "Gastos de personal de ventas"
    SALES_FEES = "5210", "Honorarios de ventas"
    ADVERTISING = "5240", "Publicidad y propaganda"
    FREIGHT = "5260", "Transporte y fletes"
    BANK_FEES = "5305", "Gastos bancarios"
    INTEREST = "5310", "Intereses"
    COST_OF_SALES = "6135", "Costo de ventas"


_NATURE_AND_TYPE_BY_PREFIX = {
    "1": (AccountNature.DEBIT, AccountType.ASSET),
    "2": (AccountNature.CREDIT, AccountType.LIABILITY),
    "3": (AccountNature.CREDIT, AccountType.EQUITY),
    "4": (AccountNature.CREDIT, AccountType.INCOME),
    "5": (AccountNature.DEBIT, AccountType.EXPENSE),
    "6": (AccountNature.DEBIT, AccountType.COST),
}

# Contra accounts whose nature is opposite to their class.
_NATURE_OVERRIDES = {
    LedgerAccount.SALES_RETURNS: AccountNature.DEBIT,
}


@dataclass(frozen=True)
class ChartAccount:
    code: str
    name: str
    nature: str
    account_type: str


def _chart_account(member: LedgerAccount) -> ChartAccount:
    nature, account_type = _NATURE_AND_TYPE_BY_PREFIX[member.value[0]]
    return ChartAccount(
        code=member.value,
        name=str(member.label),
        nature=_NATURE_OVERRIDES.get(member, nature),
        account_type=account_type,
    )


RETAIL_CHART: tuple[ChartAccount, ...] = tuple(_chart_account(m) for m in LedgerAccount)


# ------------------------------------------------------------
# EXHAUSTIVE MAPPINGS
# ------------------------------------------------------------

PAYMENT_METHOD_ACCOUNTS: dict[str, LedgerAccount] = {
    PaymentMethod.CASH: LedgerAccount.CASH,
    PaymentMethod.CARD: LedgerAccount.BANK,
    PaymentMethod.TRANSFER: LedgerAccount.BANK,
    PaymentMethod.NEQUI: LedgerAccount.BANK,
    PaymentMethod.DAVIPLATA: LedgerAccount.BANK,
    PaymentMethod.BANK: LedgerAccount.BANK,
    PaymentMethod.OTHER: LedgerAccount.BANK,
}

EXPENSE_PAYMENT_ACCOUNTS: dict[str, LedgerAccount] = {
    ExpensePaymentMethod.CASH: LedgerAccount.CASH,
    ExpensePaymentMethod.BANK: LedgerAccount.BANK,
    ExpensePaymentMethod.CARD: LedgerAccount.BANK,
    ExpensePaymentMethod.TRANSFER: LedgerAccount.BANK,
    ExpensePaymentMethod.CREDIT: LedgerAccount.EXPENSES_PAYABLE,
}

EXPENSE_CATEGORY_ACCOUNTS: dict[str, LedgerAccount] = {
    ExpenseCategory.INVENTORY_PURCHASE: LedgerAccount.INVENTORY,
    ExpenseCategory.PAYROLL: LedgerAccount.PAYROLL,
    ExpenseCategory.PROFESSIONAL_SERVICES: LedgerAccount.FEES,
    ExpenseCategory.TAXES_FEES: LedgerAccount.TAXES,
    ExpenseCategory.RENT: LedgerAccount.RENT,
    ExpenseCategory.INSURANCE: LedgerAccount.INSURANCE,
    ExpenseCategory.UTILITIES: LedgerAccount.SERVICES,
    ExpenseCategory.INTERNET_PHONE: LedgerAccount.SERVICES,
    ExpenseCategory.LEGAL: LedgerAccount.LEGAL,
    ExpenseCategory.MAINTENANCE: LedgerAccount.MAINTENANCE,
    ExpenseCategory.INSTALLATION: LedgerAccount.INSTALLATION,
    ExpenseCategory.TRAVEL: LedgerAccount.TRAVEL,
    ExpenseCategory.DEPRECIATION: LedgerAccount.DEPRECIATION,
    ExpenseCategory.OFFICE_SUPPLIES: LedgerAccount.MISC_EXPENSE,
    ExpenseCategory.SALES_STAFF: LedgerAccount.SALES_STAFF,
    ExpenseCategory.SALES_COMMISSIONS: LedgerAccount.SALES_FEES,
    ExpenseCategory.ADVERTISING: LedgerAccount.ADVERTISING,
    ExpenseCategory.FREIGHT: LedgerAccount.FREIGHT,
    ExpenseCategory.BANK_FEES: LedgerAccount.BANK_FEES,
    ExpenseCategory.INTEREST: LedgerAccount.INTEREST,
    ExpenseCategory.OTHER: LedgerAccount.MISC_EXPENSE,
}


def assert_exhaustive(mapping: dict, choices: type[models.TextChoices], name: str) -> None:
    missing = sorted(set(choices.values) - {str(k) for k in mapping})
    if missing:
        raise ImproperlyConfigured(f"{name} has no account for: {', '.join(missing)}")


assert_exhaustive(PAYMENT_METHOD_ACCOUNTS, PaymentMethod, "PAYMENT_METHOD_ACCOUNTS")
assert_exhaustive(EXPENSE_PAYMENT_ACCOUNTS, ExpensePaymentMethod, "EXPENSE_PAYMENT_ACCOUNTS")
assert_exhaustive(EXPENSE_CATEGORY_ACCOUNTS, ExpenseCategory, "EXPENSE_CATEGORY_ACCOUNTS")


def account_for_payment_method(method: str) -> LedgerAccount:
    try:
        return PAYMENT_METHOD_ACCOUNTS[PaymentMethod(method)]
    except ValueError as exc:
        raise ImproperlyConfigured(f"Unknown payment method: {method!r}") from exc


def account_for_expense_category(category: str) -> LedgerAccount:
    try:
        return EXPENSE_CATEGORY_ACCOUNTS[ExpenseCategory(category)]
    except ValueError as exc:
        raise ImproperlyConfigured(f"Unknown expense category: {category!r}") from exc


def account_for_expense_payment(method: str) -> LedgerAccount:
    try:
        return EXPENSE_PAYMENT_ACCOUNTS[ExpensePaymentMethod(method)]
    except ValueError as exc:
        raise ImproperlyConfigured(f"Unknown expense payment method: {method!r}") from exc


# ------------------------------------------------------------
# RESOLUTION
# ------------------------------------------------------------


def resolve(tenant, code: str, *, require_active: bool = True) -> Account:
    code = str(code).strip()
    account = Account.objects.filter(tenant=tenant, code=code).first()
    if account is None:
        raise AccountNotFoundError(code, tenant=tenant)
    if require_active and not account.is_active:
        raise AccountNotFoundError(code, tenant=tenant, inactive=True)
    return account


def resolve_many(tenant, codes: Iterable[str], *, require_active: bool = True) -> dict[str, Account]:
    """
    Resolve several codes with one query. Any missing/inactive code fails the whole call.
    """
    wanted = {str(c).strip() for c in codes}
    found = {
        acc.code: acc
        for acc in Account.objects.filter(tenant=tenant, code__in=wanted)
    }

    for code in sorted(wanted):
        account = found.get(code)
        if account is None:
            raise AccountNotFoundError(code, tenant=tenant)
        if require_active and not account.is_active:
            raise AccountNotFoundError(code, tenant=tenant, inactive=True)

    return found


@transaction.atomic
def set_active(*, tenant, code: str, is_active: bool) -> Account:
    """
    The only mutation the directory allows. Historical lines are untouched.
    """
    account = (
        Account.objects.select_for_update()
        .filter(tenant=tenant, code=str(code).strip())
        .first()
    )
    if account is None:
        raise AccountNotFoundError(code, tenant=tenant)

    if account.is_active != bool(is_active):
        account.is_active = bool(is_active)
        account.save(update_fields=["is_active", "updated_at"])
        logger.info(
            "Account %s %s for tenant %s",
            account.code,
            "activated" if account.is_active else "deactivated",
            tenant.slug,
        )

    return account


# ------------------------------------------------------------
# PROVISIONING
# ------------------------------------------------------------


@transaction.atomic
def provision_chart(tenant) -> tuple[int, int]:
    """
    Idempotently create the retail chart for a tenant.

    Existing accounts keep their activation flag; only missing ones are created.
    Returns (created, existing).
    """
    created_count = 0
    existing_count = 0

    for row in RETAIL_CHART:
        _, created = Account.objects.get_or_create(
            tenant=tenant,
            code=row.code,
            defaults={
                "name": row.name,
                "nature": row.nature,
                "account_type": row.account_type,
                "is_active": True,
            },
        )
        if created:
            created_count += 1
        else:
            existing_count += 1

    if created_count:
        logger.info("Provisioned %s accounts for tenant %s", created_count, tenant.slug)

    return created_count, existing_count
