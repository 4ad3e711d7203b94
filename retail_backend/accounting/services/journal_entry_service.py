# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (LEDGER ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry / JournalEntryLine
- Enforce debit == credit (within LEDGER_BALANCE_TOLERANCE)
- Draw JE numbers from the tenant's document sequence
- Confirm drafts and reverse confirmed entries

Everything else (sales, expenses, purchases, credit payments, cash register)
builds a list of LineRequest and passes through post_entry().

Rules:
- Validation happens before any write; a rejected request persists nothing
- Number + entry + lines are one atomic unit (the number is never reused)
- Confirmed entries are never edited: reverse_entry() posts a mirror entry
- Posting never touches stock, cash or credit state
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Sequence

from django.db import IntegrityError, transaction
from django.db.models import Q, Sum
from django.utils import timezone

from accounting.models.choices import EntryStatus, EntryType, Movement
from accounting.models.journal import JournalEntry, balance_tolerance
from accounting.models.journal_line import JournalEntryLine
from accounting.services import account_directory
from accounting.services.exceptions import (
    DuplicateReferenceError,
    EntryStateError,
    InvariantViolation,
    LedgerValidationError,
    UnbalancedEntryError,
)
from tenants.models import DocumentSequence
from tenants.services.sequences import next_document_number

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
MIN_LINE_AMOUNT = Decimal("0.01")
MIN_LINES = 2
REVERSAL_REFERENCE_TYPE = "JournalEntry"


def _money(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise LedgerValidationError(f"Invalid money value: {value!r}") from exc

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _as_date(value: date | datetime | None) -> date:
    if value is None:
        return timezone.localdate()
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            value = timezone.make_aware(value, timezone.get_current_timezone())
        return timezone.localtime(value).date()
    return value


# ============================================================
# REQUEST / RESULT VALUES
# ============================================================


@dataclass(frozen=True)
class LineRequest:
    account_code: str
    movement: str
    amount: Decimal
    description: str = ""


@dataclass(frozen=True)
class EntryRequest:
    tenant: object
    entry_type: str
    description: str
    lines: Sequence[LineRequest]
    entry_date: date | datetime | None = None
    reference_type: str = ""
    reference_id: str = ""
    reference_number: str = ""
    notes: str = ""
    created_by: object = None
    draft: bool = False


@dataclass(frozen=True)
class BalanceCheck:
    total_debits: Decimal
    total_credits: Decimal
    tolerance: Decimal = field(default_factory=balance_tolerance)

    @property
    def difference(self) -> Decimal:
        return (self.total_debits - self.total_credits).copy_abs()

    @property
    def is_balanced(self) -> bool:
        return self.difference < self.tolerance


def check_balance(lines: Iterable) -> BalanceCheck:
    """
    Sum debit and credit amounts of LineRequest (or stored line) objects.

    Returns a value; callers decide whether an imbalance is an error.
    """
    debits = Decimal("0.00")
    credits = Decimal("0.00")

    for line in lines:
        amount = _money(line.amount)
        if line.movement == Movement.DEBIT:
            debits += amount
        elif line.movement == Movement.CREDIT:
            credits += amount
        else:
            raise LedgerValidationError(f"Invalid movement: {line.movement!r}")

    return BalanceCheck(total_debits=debits, total_credits=credits)


# ============================================================
# VALIDATION
# ============================================================


def _normalize_lines(lines: Sequence[LineRequest]) -> list[LineRequest]:
    if len(lines) < MIN_LINES:
        raise LedgerValidationError(
            f"Journal entry must contain at least {MIN_LINES} lines"
        )

    normalized: list[LineRequest] = []
    for line in lines:
        code = str(getattr(line, "account_code", "") or "").strip()
        if not code:
            raise LedgerValidationError("Line missing account code")

        if line.movement not in Movement.values:
            raise LedgerValidationError(f"Invalid movement: {line.movement!r}")

        amount = _money(line.amount)
        if amount < MIN_LINE_AMOUNT:
            raise LedgerValidationError(
                f"Line amount must be > 0 (account {code}, got {amount})"
            )

        normalized.append(
            LineRequest(
                account_code=code,
                movement=Movement(line.movement),
                amount=amount,
                description=(line.description or "").strip(),
            )
        )

    return normalized


def _validate_request(request: EntryRequest) -> tuple[list[LineRequest], BalanceCheck]:
    if request.tenant is None:
        raise LedgerValidationError("tenant is required")

    if request.entry_type not in EntryType.values:
        raise LedgerValidationError(f"Unknown entry type: {request.entry_type!r}")

    if not (request.description or "").strip():
        raise LedgerValidationError("Journal entry description is required")

    if bool(request.reference_type) != bool(request.reference_id):
        raise LedgerValidationError("reference_type and reference_id go together")

    lines = _normalize_lines(list(request.lines))
    check = check_balance(lines)
    if not check.is_balanced:
        raise UnbalancedEntryError(check)

    return lines, check


# ============================================================
# POSTING
# ============================================================


def _persist(
    request: EntryRequest,
    *,
    reversal_of: JournalEntry | None = None,
    require_active_accounts: bool = True,
) -> JournalEntry:
    lines, check = _validate_request(request)

    accounts = account_directory.resolve_many(
        request.tenant,
        [line.account_code for line in lines],
        require_active=require_active_accounts,
    )

    reference_id = str(request.reference_id or "").strip()
    if reference_id and find_by_reference(
        tenant=request.tenant,
        reference_type=request.reference_type,
        reference_id=reference_id,
    ):
        raise DuplicateReferenceError(
            f"Journal entry already exists for {request.reference_type}:{reference_id}"
        )

    entry_date = _as_date(request.entry_date)
    now = timezone.now()

    try:
        with transaction.atomic():
            number = next_document_number(
                tenant=request.tenant,
                kind=DocumentSequence.Kind.JOURNAL_ENTRY,
                at=entry_date,
            )

            entry = JournalEntry(
                tenant=request.tenant,
                entry_number=number.formatted,
                entry_date=entry_date,
                entry_type=request.entry_type,
                status=EntryStatus.DRAFT if request.draft else EntryStatus.CONFIRMED,
                description=request.description.strip(),
                total_debits=check.total_debits,
                total_credits=check.total_credits,
                reference_type=(request.reference_type or "").strip(),
                reference_id=reference_id,
                reference_number=(request.reference_number or "").strip(),
                notes=(request.notes or "").strip(),
                created_by=request.created_by,
                confirmed_at=None if request.draft else now,
                reversal_of=reversal_of,
            )
            entry.save()

            JournalEntryLine.objects.bulk_create(
                [
                    JournalEntryLine(
                        entry=entry,
                        account=accounts[line.account_code],
                        movement=line.movement,
                        amount=line.amount,
                        line_order=index,
                        description=line.description,
                    )
                    for index, line in enumerate(lines, start=1)
                ]
            )
    except IntegrityError as exc:
        if reference_id and find_by_reference(
            tenant=request.tenant,
            reference_type=request.reference_type,
            reference_id=reference_id,
        ):
            raise DuplicateReferenceError(
                f"Journal entry already exists for {request.reference_type}:{reference_id}"
            ) from exc
        raise

    logger.info(
        "Posted %s (%s) tenant=%s debits=%s credits=%s ref=%s:%s",
        entry.entry_number,
        entry.entry_type,
        request.tenant.slug,
        entry.total_debits,
        entry.total_credits,
        entry.reference_type,
        entry.reference_id,
    )
    return entry


def post_entry(request: EntryRequest) -> JournalEntry:
    """
    Validate, number and persist a balanced journal entry with its lines.

    Raises:
    - UnbalancedEntryError (carries the BalanceCheck)
    - AccountNotFoundError (code missing or inactive for the tenant)
    - DuplicateReferenceError (an active entry already exists for the reference)
    - LedgerValidationError (malformed request)
    """
    return _persist(request)


@transaction.atomic
def confirm_entry(*, entry: JournalEntry) -> JournalEntry:
    locked = JournalEntry.objects.select_for_update().get(pk=entry.pk)
    if locked.status != EntryStatus.DRAFT:
        raise EntryStateError(f"Only DRAFT entries can be confirmed ({locked.status})")

    check = check_balance(locked.lines.all())
    if not check.is_balanced:
        raise UnbalancedEntryError(check)

    locked.status = EntryStatus.CONFIRMED
    locked.confirmed_at = timezone.now()
    locked.total_debits = check.total_debits
    locked.total_credits = check.total_credits
    locked.save()

    logger.info("Confirmed %s tenant=%s", locked.entry_number, locked.tenant.slug)
    return locked


@transaction.atomic
def reverse_entry(*, entry: JournalEntry, reason: str = "", created_by=None) -> JournalEntry:
    """
    Post the mirror image of a CONFIRMED entry and mark the original CANCELLED.

    The original's lines are never rewritten. Returns the reversal entry.
    """
    original = JournalEntry.objects.select_for_update().get(pk=entry.pk)

    if original.status != EntryStatus.CONFIRMED or original.reversal_entry_id:
        raise EntryStateError(
            f"Only CONFIRMED, unreversed entries can be reversed ({original.entry_number} is {original.status})"
        )

    reason = (reason or "").strip()
    lines = [
        LineRequest(
            account_code=line.account.code,
            movement=Movement(line.movement).opposite,
            amount=line.amount,
            description=f"Reversal: {line.description}" if line.description else "Reversal",
        )
        for line in original.lines.select_related("account").order_by("line_order")
    ]

    reversal = _persist(
        EntryRequest(
            tenant=original.tenant,
            entry_type=original.entry_type,
            description=f"Reversal of {original.entry_number}" + (f": {reason}" if reason else ""),
            lines=lines,
            reference_type=REVERSAL_REFERENCE_TYPE,
            reference_id=str(original.pk),
            reference_number=original.entry_number,
            notes=reason,
            created_by=created_by,
        ),
        reversal_of=original,
        require_active_accounts=False,
    )

    original.status = EntryStatus.CANCELLED
    original.cancelled_at = timezone.now()
    original.cancellation_reason = reason[:255]
    original.reversal_entry = reversal
    original.save()

    logger.info(
        "Reversed %s with %s tenant=%s",
        original.entry_number,
        reversal.entry_number,
        original.tenant.slug,
    )
    return reversal


# ============================================================
# READS
# ============================================================


def find_by_reference(
    *,
    tenant,
    reference_type: str,
    reference_id,
    include_cancelled: bool = False,
) -> JournalEntry | None:
    qs = JournalEntry.objects.filter(
        tenant=tenant,
        reference_type=(reference_type or "").strip(),
        reference_id=str(reference_id or "").strip(),
    )
    if not include_cancelled:
        qs = qs.exclude(status=EntryStatus.CANCELLED)
    return qs.order_by("-created_at").first()


def list_entries(
    *,
    tenant,
    entry_type: str | None = None,
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
):
    qs = JournalEntry.objects.filter(tenant=tenant)
    if entry_type:
        qs = qs.filter(entry_type=entry_type)
    if status:
        qs = qs.filter(status=status)
    if date_from:
        qs = qs.filter(entry_date__gte=date_from)
    if date_to:
        qs = qs.filter(entry_date__lte=date_to)
    return qs.order_by("-entry_date", "-created_at")


def verify_entry(entry: JournalEntry) -> BalanceCheck:
    """
    Recompute totals from stored lines.

    Raises InvariantViolation when a non-cancelled entry is unbalanced,
    has fewer than two lines, or its stored totals disagree with its lines.
    Callers must stop automated processing of the entry on failure.
    """
    sums = JournalEntryLine.objects.filter(entry=entry).aggregate(
        debits=Sum("amount", filter=Q(movement=Movement.DEBIT)),
        credits=Sum("amount", filter=Q(movement=Movement.CREDIT)),
    )
    check = BalanceCheck(
        total_debits=_money(sums["debits"]),
        total_credits=_money(sums["credits"]),
    )

    problem = None
    if JournalEntryLine.objects.filter(entry=entry).count() < MIN_LINES:
        problem = "entry has fewer than two lines"
    elif entry.status != EntryStatus.CANCELLED and not check.is_balanced:
        problem = f"stored lines are unbalanced (difference {check.difference})"
    elif (
        _money(entry.total_debits) != check.total_debits
        or _money(entry.total_credits) != check.total_credits
    ):
        problem = "stored totals disagree with lines"

    if problem:
        logger.error(
            "Ledger invariant violated entry=%s tenant=%s: %s",
            entry.entry_number,
            entry.tenant_id,
            problem,
        )
        raise InvariantViolation(entry, problem)

    return check
