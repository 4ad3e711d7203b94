# accounting/services/balance_service.py

"""
BALANCE & REPORTING SERVICE (AUTHORITATIVE)

Read-only ledger aggregation helpers.

RULES:
- READ-ONLY: no writes, ever
- JournalEntryLine is the single source of truth
- Accounting timeline uses JournalEntry.entry_date
- CONFIRMED and CANCELLED entries count (a cancellation is paired with its
  reversal, so the pair nets to zero); DRAFT entries never count
- Tenant-scoped: never mix tenants
- VAT position reads the single VAT account (generated vs deductible)
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Q, Sum
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.choices import AccountNature, EntryStatus, Movement
from accounting.models.journal_line import JournalEntryLine
from accounting.services.account_directory import LedgerAccount

TWOPLACES = Decimal("0.01")
POSTED_STATUSES = (EntryStatus.CONFIRMED, EntryStatus.CANCELLED)


class BalanceServiceError(Exception):
    """Base error for balance and reporting services."""


def _q2(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_minor_int(amount: Decimal) -> int:
    return int((_q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _posted_lines(*, as_of: date | None = None):
    qs = JournalEntryLine.objects.filter(entry__status__in=POSTED_STATUSES)
    if as_of is not None:
        qs = qs.filter(entry__entry_date__lte=as_of)
    return qs


def _signed(nature: str, debit: Decimal, credit: Decimal) -> Decimal:
    if nature == AccountNature.DEBIT:
        return _q2(debit - credit)
    return _q2(credit - debit)


def get_account_balance(account: Account, *, as_of: date | None = None) -> Decimal:
    """
    Balance rule follows the account nature:
    - DEBIT nature  → debits - credits
    - CREDIT nature → credits - debits
    """
    totals = _posted_lines(as_of=as_of).filter(account=account).aggregate(
        debit=Sum("amount", filter=Q(movement=Movement.DEBIT)),
        credit=Sum("amount", filter=Q(movement=Movement.CREDIT)),
    )
    return _signed(account.nature, _q2(totals["debit"]), _q2(totals["credit"]))


def get_balance_by_code(*, tenant, code: str, as_of: date | None = None) -> Decimal:
    account = Account.objects.filter(tenant=tenant, code=code).first()
    if account is None:
        raise BalanceServiceError(f"Account {code} does not exist for tenant {tenant.slug}")
    return get_account_balance(account, as_of=as_of)


def trial_balance(*, tenant, as_of: date | None = None) -> dict:
    """
    Trial balance for one tenant.

    Guarantees:
    - One aggregate query (no N+1)
    - Accounts without movement are omitted
    - Returns JSON-safe values (strings for money, minor units as ints)
    """
    cutoff = as_of or timezone.localdate()

    accounts = {
        acc.id: acc
        for acc in Account.objects.filter(tenant=tenant).only(
            "id", "code", "name", "nature", "is_active"
        )
    }

    rows = (
        _posted_lines(as_of=cutoff)
        .filter(account_id__in=list(accounts))
        .values("account_id", "movement")
        .annotate(total=Sum("amount"))
    )

    debit_by_account: dict[int, Decimal] = {}
    credit_by_account: dict[int, Decimal] = {}
    for r in rows:
        target = debit_by_account if r["movement"] == Movement.DEBIT else credit_by_account
        target[r["account_id"]] = _q2(r["total"])

    output = []
    total_debit = Decimal("0.00")
    total_credit = Decimal("0.00")

    for acc in sorted(accounts.values(), key=lambda a: a.code):
        debit = debit_by_account.get(acc.id, Decimal("0.00"))
        credit = credit_by_account.get(acc.id, Decimal("0.00"))
        if debit == 0 and credit == 0:
            continue

        output.append(
            {
                "account_code": acc.code,
                "account_name": acc.name,
                "nature": acc.nature,
                "is_active": acc.is_active,
                "debit": str(debit),
                "credit": str(credit),
                "balance": str(_signed(acc.nature, debit, credit)),
            }
        )
        total_debit += debit
        total_credit += credit

    return {
        "as_of": cutoff.isoformat(),
        "accounts": output,
        "totals": {
            "debit": str(_q2(total_debit)),
            "credit": str(_q2(total_credit)),
            "debit_minor": _to_minor_int(total_debit),
            "credit_minor": _to_minor_int(total_credit),
            "balanced": _to_minor_int(total_debit) == _to_minor_int(total_credit),
        },
    }


def vat_position(*, tenant, date_from: date | None = None, date_to: date | None = None) -> dict:
    """
    VAT position for one tenant over an entry_date window.

    All VAT flows through one account:
    - credits are VAT generated on sales
    - debits are deductible VAT on purchases and expenses
    Reversed entries and their reversals are left out, so an annulled
    sale does not show up as deductible VAT.

    position is PAYABLE when generated >= deductible, else RECEIVABLE.
    """
    if date_from and date_to and date_from > date_to:
        raise BalanceServiceError("date_from must be on or before date_to")

    qs = JournalEntryLine.objects.filter(
        entry__tenant=tenant,
        entry__status=EntryStatus.CONFIRMED,
        entry__reversal_of__isnull=True,
        account__tenant=tenant,
        account__code=LedgerAccount.VAT_PAYABLE,
    )
    if date_from is not None:
        qs = qs.filter(entry__entry_date__gte=date_from)
    if date_to is not None:
        qs = qs.filter(entry__entry_date__lte=date_to)

    totals = qs.aggregate(
        deductible=Sum("amount", filter=Q(movement=Movement.DEBIT)),
        generated=Sum("amount", filter=Q(movement=Movement.CREDIT)),
    )
    generated = _q2(totals["generated"])
    deductible = _q2(totals["deductible"])
    net = _q2(generated - deductible)

    return {
        "date_from": date_from.isoformat() if date_from else None,
        "date_to": date_to.isoformat() if date_to else None,
        "generated": str(generated),
        "deductible": str(deductible),
        "balance": str(abs(net)),
        "position": "PAYABLE" if net >= 0 else "RECEIVABLE",
    }
