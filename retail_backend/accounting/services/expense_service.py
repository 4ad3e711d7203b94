# accounting/services/expense_service.py

"""
EXPENSE POSTING SERVICE

Responsibilities:
- Validate expense payload
- Create Expense business record
- Post its JournalEntry through the engine (same transaction)

Accounting Effect:
- Dr Expense category account (subtotal)
- Dr VAT payable (deductible tax, when > 0)
- Cr Cash / Bank / Expenses payable (total)

Example: utilities 200,000 + VAT 38,000 paid by bank
    Dr 5135  200,000
    Dr 2408   38,000
    Cr 1110  238,000
"""

from __future__ import annotations

import logging
from datetime import date as date_type
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.utils import timezone

from accounting.models.choices import EntryType, ExpenseCategory, ExpensePaymentMethod
from accounting.models.expense import Expense
from accounting.services.account_directory import (
    LedgerAccount,
    account_for_expense_category,
    account_for_expense_payment,
)
from accounting.services.exceptions import LedgerValidationError
from accounting.services.journal_entry_service import EntryRequest, post_entry
from accounting.services.posting import LineBuilder

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


class ExpensePostingError(LedgerValidationError):
    pass


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _normalize_expense_date(expense_date) -> date_type:
    if expense_date is None:
        return timezone.localdate()
    if isinstance(expense_date, date_type):
        return expense_date
    raise ExpensePostingError("expense_date must be a date")


def build_expense_lines(expense: Expense):
    label = expense.get_category_display()
    lines = LineBuilder()
    lines.debit(account_for_expense_category(expense.category), expense.subtotal, f"{label} - gasto #{expense.pk}")
    lines.debit(LedgerAccount.VAT_PAYABLE, expense.tax_amount, f"IVA descontable gasto #{expense.pk}")
    lines.credit(account_for_expense_payment(expense.payment_method), expense.total_amount, f"Pago de {label}")
    return lines.build()


@transaction.atomic
def create_expense_and_post(
    *,
    tenant,
    user,
    category: str,
    subtotal,
    tax_amount=Decimal("0.00"),
    payment_method: str = ExpensePaymentMethod.CASH,
    expense_date=None,
    vendor: str = "",
    narration: str = "",
) -> Expense:
    if category not in ExpenseCategory.values:
        raise ExpensePostingError(f"Unknown expense category: {category!r}")
    if payment_method not in ExpensePaymentMethod.values:
        raise ExpensePostingError(f"Unknown payment method: {payment_method!r}")

    subtotal = _money(subtotal)
    tax_amount = _money(tax_amount)
    if subtotal <= Decimal("0.00"):
        raise ExpensePostingError("Subtotal must be > 0")
    if tax_amount < Decimal("0.00"):
        raise ExpensePostingError("Tax amount cannot be negative")

    expense = Expense.objects.create(
        tenant=tenant,
        category=category,
        expense_date=_normalize_expense_date(expense_date),
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
        payment_method=payment_method,
        vendor=(vendor or "").strip(),
        narration=(narration or "").strip(),
        created_by=user,
    )

    entry = post_entry(
        EntryRequest(
            tenant=tenant,
            entry_type=EntryType.EXPENSE,
            entry_date=expense.expense_date,
            description=f"Gasto: {expense.get_category_display()}"
            + (f" - {expense.vendor}" if expense.vendor else ""),
            lines=build_expense_lines(expense),
            reference_type="Expense",
            reference_id=str(expense.pk),
            notes=expense.narration,
            created_by=user,
        )
    )

    expense.journal_entry = entry
    expense.save(update_fields=["journal_entry"])

    logger.info(
        "Expense %s posted as %s tenant=%s total=%s",
        expense.pk,
        entry.entry_number,
        tenant.slug,
        expense.total_amount,
    )
    return expense
