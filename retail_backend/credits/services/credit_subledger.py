# credits/services/credit_subledger.py

"""
======================================================
PATH: credits/services/credit_subledger.py
======================================================
CREDIT SUBLEDGER SERVICE

The ONLY place allowed to create credits, apply payments to them or cancel them.

Rules:
- extend() locks the customer row, so two concurrent credit sales cannot both
  pass the limit check against the same headroom
- extend() is idempotent per (reference_type, reference_id): a retry returns
  the credit that already exists
- allocate_payment() walks open credits oldest-due first (ties by creation),
  applying as much as each balance absorbs; any remainder is reported as excess
- Payments are posted to the ledger in the same transaction when
  ACCOUNTING_POSTING_ENABLED is on (cash/bank DEBIT, receivables CREDIT)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from accounting.models.choices import PaymentMethod
from credits.models import (
    CreditPayment,
    CreditPaymentAllocation,
    Customer,
    CustomerCredit,
)
from credits.services.exceptions import (
    CreditLimitExceededError,
    CreditPaymentError,
    CreditStateError,
    CreditSubledgerError,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ============================================================
# RESULT VALUES
# ============================================================


@dataclass(frozen=True)
class CreditLimitCheck:
    customer_id: int
    credit_limit: Decimal
    credit_used: Decimal
    requested: Decimal

    @property
    def available(self) -> Decimal:
        return max(ZERO, self.credit_limit - self.credit_used)

    @property
    def allowed(self) -> bool:
        return self.credit_used + self.requested <= self.credit_limit


@dataclass(frozen=True)
class PaymentAllocationResult:
    payment: CreditPayment
    allocations: tuple = field(default_factory=tuple)

    @property
    def applied(self) -> Decimal:
        return self.payment.applied_amount

    @property
    def excess(self) -> Decimal:
        return self.payment.excess_amount


# ============================================================
# QUERIES
# ============================================================


def credit_used(customer: Customer) -> Decimal:
    total = CustomerCredit.objects.filter(
        customer=customer,
        status__in=CustomerCredit.OPEN_STATUSES,
    ).aggregate(total=Sum("balance"))["total"]
    return _money(total)


def check_credit(*, customer: Customer, amount) -> CreditLimitCheck:
    return CreditLimitCheck(
        customer_id=customer.pk,
        credit_limit=_money(customer.credit_limit),
        credit_used=credit_used(customer),
        requested=_money(amount),
    )


def open_credits(customer: Customer):
    return CustomerCredit.objects.filter(
        customer=customer,
        status__in=CustomerCredit.OPEN_STATUSES,
    ).order_by(F("due_date").asc(nulls_last=True), "created_at", "id")


def credit_summary(*, tenant) -> dict:
    """
    Portfolio totals per tenant. Overdue is evaluated against today,
    so rows not yet re-saved as OVERDUE are still counted as overdue.
    """
    today = timezone.localdate()
    qs = CustomerCredit.objects.filter(tenant=tenant, status__in=CustomerCredit.OPEN_STATUSES)
    overdue_q = Q(due_date__lt=today)

    totals = qs.aggregate(
        open_count=Count("id"),
        open_balance=Sum("balance"),
        overdue_count=Count("id", filter=overdue_q),
        overdue_balance=Sum("balance", filter=overdue_q),
    )

    return {
        "as_of": today.isoformat(),
        "open_count": totals["open_count"] or 0,
        "open_balance": str(_money(totals["open_balance"])),
        "overdue_count": totals["overdue_count"] or 0,
        "overdue_balance": str(_money(totals["overdue_balance"])),
    }


# ============================================================
# EXTEND
# ============================================================


def _lock_customer(customer: Customer) -> Customer:
    return Customer.objects.select_for_update().select_related("tenant").get(pk=customer.pk)


@transaction.atomic
def extend(
    *,
    customer: Customer,
    amount,
    reference_type: str,
    reference_id,
    reference_number: str = "",
    due_date: date | None = None,
    description: str = "",
    created_by=None,
) -> CustomerCredit:
    amount = _money(amount)
    if amount <= ZERO:
        raise CreditSubledgerError("Credit amount must be greater than zero")

    reference_id = str(reference_id or "")
    locked = _lock_customer(customer)

    if reference_id:
        existing = CustomerCredit.objects.filter(
            tenant_id=locked.tenant_id,
            reference_type=reference_type,
            reference_id=reference_id,
        ).exclude(status=CustomerCredit.Status.CANCELLED).first()
        if existing is not None:
            logger.info(
                "Credit for %s %s already exists (%s); returning it",
                reference_type,
                reference_id,
                existing.pk,
            )
            return existing

    if not locked.is_active:
        raise CreditSubledgerError(f"Customer {locked.name} is inactive")

    check = check_credit(customer=locked, amount=amount)
    if not check.allowed:
        raise CreditLimitExceededError(check)

    if due_date is None:
        due_date = timezone.localdate() + timedelta(days=locked.effective_term_days)

    credit = CustomerCredit.objects.create(
        tenant_id=locked.tenant_id,
        customer=locked,
        amount=amount,
        due_date=due_date,
        reference_type=reference_type or "",
        reference_id=reference_id,
        reference_number=reference_number or "",
        description=description or "",
        created_by=created_by,
    )

    logger.info(
        "Credit %s extended to customer %s amount=%s due=%s ref=%s:%s",
        credit.pk,
        locked.pk,
        amount,
        due_date,
        reference_type,
        reference_id,
    )
    return credit


# ============================================================
# PAYMENTS (FIFO)
# ============================================================


@transaction.atomic
def allocate_payment(
    *,
    customer: Customer,
    amount,
    payment_method: str = PaymentMethod.CASH,
    notes: str = "",
    received_by=None,
    withholding_amount=ZERO,
) -> PaymentAllocationResult:
    """
    Apply a payment to the customer's open credits, oldest due date first.

    withholding_amount is the part of `amount` the customer settled with a
    withholding certificate; it must be fully applied to credits.
    """
    amount = _money(amount)
    withholding = _money(withholding_amount)
    if amount <= ZERO:
        raise CreditPaymentError("Payment amount must be greater than zero")
    if withholding < ZERO or withholding > amount:
        raise CreditPaymentError("Withholding must be between zero and the payment amount")
    if payment_method not in PaymentMethod.values:
        raise CreditPaymentError(f"Unknown payment method: {payment_method!r}")

    locked = _lock_customer(customer)
    credits = list(open_credits(locked).select_for_update())
    if not credits:
        raise CreditPaymentError(f"Customer {locked.name} has no outstanding credits")

    remaining = amount
    applied_pairs = []
    for credit in credits:
        if remaining <= ZERO:
            break
        portion = min(remaining, credit.balance)
        if portion <= ZERO:
            continue

        credit.paid_amount = _money(credit.paid_amount) + portion
        credit.save(update_fields=["paid_amount"])
        applied_pairs.append((credit, portion))
        remaining -= portion

    if withholding > amount - remaining:
        raise CreditPaymentError(
            f"Withholding {withholding} exceeds the {amount - remaining} applied to credits"
        )

    payment = CreditPayment.objects.create(
        tenant_id=locked.tenant_id,
        customer=locked,
        amount=amount,
        applied_amount=amount - remaining,
        excess_amount=remaining,
        withholding_amount=withholding,
        payment_method=payment_method,
        notes=notes or "",
        received_by=received_by,
    )

    allocations = tuple(
        CreditPaymentAllocation.objects.create(
            payment=payment,
            credit=credit,
            amount=portion,
            balance_after=credit.balance,
        )
        for credit, portion in applied_pairs
    )

    if getattr(settings, "ACCOUNTING_POSTING_ENABLED", False):
        from accounting.services.posting import post_credit_payment_to_ledger

        entry = post_credit_payment_to_ledger(payment=payment, created_by=received_by)
        if entry is not None:
            payment.journal_entry = entry
            payment.save(update_fields=["journal_entry"])

    logger.info(
        "Credit payment %s customer=%s amount=%s applied=%s excess=%s withholding=%s",
        payment.pk,
        locked.pk,
        amount,
        payment.applied_amount,
        payment.excess_amount,
        withholding,
    )
    return PaymentAllocationResult(payment=payment, allocations=allocations)


# ============================================================
# CANCELLATION
# ============================================================


@transaction.atomic
def cancel_credits_for_reference(
    *,
    tenant,
    reference_type: str,
    reference_id,
    reason: str = "",
) -> int:
    """
    Cancel every open credit raised by a reference (e.g. a cancelled sale).
    A credit that already received payments cannot be cancelled.
    """
    credits = list(
        CustomerCredit.objects.select_for_update().filter(
            tenant=tenant,
            reference_type=reference_type,
            reference_id=str(reference_id),
            status__in=CustomerCredit.OPEN_STATUSES,
        )
    )

    paid = [c for c in credits if _money(c.paid_amount) > ZERO]
    if paid:
        raise CreditStateError(
            f"Credit {paid[0].pk} already received {paid[0].paid_amount}; it cannot be cancelled"
        )

    now = timezone.now()
    for credit in credits:
        credit.status = CustomerCredit.Status.CANCELLED
        credit.cancelled_at = now
        if reason:
            credit.description = f"{credit.description}\nCancelled: {reason}".strip()
        credit.save(update_fields=["status", "cancelled_at", "description"])

    if credits:
        logger.info(
            "Cancelled %s credit(s) for %s %s",
            len(credits),
            reference_type,
            reference_id,
        )
    return len(credits)
