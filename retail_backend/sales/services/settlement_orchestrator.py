# sales/services/settlement_orchestrator.py

"""
======================================================
PATH: sales/services/settlement_orchestrator.py
======================================================
SALE SETTLEMENT ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Turn a SaleRequest into a COMPLETED Sale (numbered, stock decremented).
- Fan out to the credit subledger, the cash register and the ledger after commit.
- Cancel completed sales (restock, cancel credits, reverse the ledger entry).

Hard rules:
- Quantities are integer units.
- Money values are computed server-side with 2dp ROUND_HALF_UP.
- Line tax = (line subtotal - line discount) * tax_rate / 100.
- REGULAR: paid >= total; change only from cash tenders.
- CREDIT: customer required; total - paid must pass the customer's credit limit.

Transaction layout:
1) validation (no writes)
2) serializable_atomic(): sale number, Sale/SaleItem/SalePayment rows, stock
   decrements in (product id, variant) order, flip to COMPLETED
   A ConflictError restarts from 1), at most SETTLEMENT_MAX_ATTEMPTS times.
3) post-commit steps, each in its own transaction on a locked re-read of the sale:
   credit -> cash_register -> ledger
   A step is skipped once the sale left the status it needs (e.g. cancelled).
   A failing step is logged and appended to sale.settlement_warnings.
   It never rolls back the sale; retry_post_commit_step() re-runs it.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounting.models import PaymentMethod
from accounting.services.journal_entry_service import find_by_reference, reverse_entry
from accounting.services.posting import post_sale_to_ledger
from backend.transactions import ConflictError, serializable_atomic
from cashbox.services.cash_register_service import (
    register_sale_payments,
    revert_sale_payments,
)
from credits.models import Customer
from credits.services.credit_subledger import (
    cancel_credits_for_reference,
    check_credit,
    extend,
)
from credits.services.exceptions import CreditLimitExceededError, CreditStateError
from products.models import Product, StockMovement
from products.services.stock_ledger import (
    InsufficientStock,
    adjust,
    adjust_or_raise,
    available_quantity,
)
from sales.models import Sale, SaleItem, SalePayment
from sales.services.exceptions import (
    InsufficientStockError,
    InvalidSaleTransitionError,
    PaymentValidationError,
    PostCommitFailure,
    SettlementValidationError,
)
from sales.services.sale_lifecycle import validate_transition
from tenants.models import DocumentSequence
from tenants.services.sequences import next_document_number

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

SALE_REFERENCE = "Sale"

STEP_CREDIT = "credit"
STEP_CASH_REGISTER = "cash_register"
STEP_LEDGER = "ledger"
STEP_CASH_REVERSAL = "cash_reversal"

SETTLEMENT_STEPS = (STEP_CREDIT, STEP_CASH_REGISTER, STEP_LEDGER)


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_int_qty(value) -> int:
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise SettlementValidationError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise SettlementValidationError("quantity must be a whole integer unit")


# ============================================================
# REQUESTS
# ============================================================


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: object
    quantity: int
    variant: str = ""
    unit_price: Decimal | None = None
    discount_amount: Decimal = ZERO


@dataclass(frozen=True)
class PaymentRequest:
    method: str
    amount: Decimal
    reference: str = ""


@dataclass(frozen=True)
class SaleRequest:
    tenant: object
    lines: list[SaleLineRequest]
    payments: list[PaymentRequest] = field(default_factory=list)
    sale_type: str = Sale.SaleType.REGULAR
    customer_id: object = None
    user: object = None
    notes: str = ""


# ============================================================
# PRICING (NO WRITES)
# ============================================================


@dataclass(frozen=True)
class _PricedLine:
    product: Product
    variant: str
    quantity: int
    unit_price: Decimal
    unit_cost: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    subtotal: Decimal
    total: Decimal


@dataclass(frozen=True)
class _Totals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    cost_amount: Decimal


@dataclass(frozen=True)
class _Settlement:
    paid_amount: Decimal
    credit_amount: Decimal
    change_amount: Decimal
    change_by_payment: list[Decimal]


def _load_products(*, tenant, lines) -> dict:
    ids = {str(line.product_id) for line in lines}
    products = {
        str(p.pk): p
        for p in Product.objects.filter(tenant=tenant, pk__in=ids)
    }

    for pid in ids:
        product = products.get(pid)
        if product is None:
            raise SettlementValidationError(f"Product {pid} not found")
        if not product.is_active:
            raise SettlementValidationError(f"Product {product.name} is inactive")

    return products


def _price_lines(*, tenant, lines) -> list[_PricedLine]:
    if not lines:
        raise SettlementValidationError("A sale needs at least one line")

    products = _load_products(tenant=tenant, lines=lines)
    priced = []

    for line in lines:
        qty = _to_int_qty(line.quantity)
        if qty < 1:
            raise SettlementValidationError("quantity must be at least 1")

        product = products[str(line.product_id)]
        unit_price = _money(product.sale_price if line.unit_price is None else line.unit_price)
        if unit_price < ZERO:
            raise SettlementValidationError("unit_price cannot be negative")

        subtotal = _money(unit_price * qty)
        discount = _money(line.discount_amount)
        if discount < ZERO or discount > subtotal:
            raise SettlementValidationError(
                f"Line discount for {product.name} must be between 0 and {subtotal}"
            )

        tax_rate = _money(product.tax_rate)
        tax_amount = _money((subtotal - discount) * tax_rate / HUNDRED)

        priced.append(
            _PricedLine(
                product=product,
                variant=(line.variant or "").strip(),
                quantity=qty,
                unit_price=unit_price,
                unit_cost=_money(product.cost_price),
                discount_amount=discount,
                tax_rate=tax_rate,
                tax_amount=tax_amount,
                subtotal=subtotal,
                total=subtotal - discount + tax_amount,
            )
        )

    return priced


def _totals(priced: list[_PricedLine]) -> _Totals:
    subtotal = sum((p.subtotal for p in priced), ZERO)
    discount = sum((p.discount_amount for p in priced), ZERO)
    tax = sum((p.tax_amount for p in priced), ZERO)
    cost = sum((_money(p.unit_cost * p.quantity) for p in priced), ZERO)
    return _Totals(
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax,
        total_amount=subtotal - discount + tax,
        cost_amount=cost,
    )


def _aggregate_quantities(priced: list[_PricedLine]) -> "OrderedDict[tuple, tuple]":
    """
    (product id, variant) -> (product, total quantity), sorted by key.
    Every writer locks stock rows in this order.
    """
    grouped: dict[tuple, list] = {}
    for p in priced:
        key = (str(p.product.pk), p.variant)
        if key in grouped:
            grouped[key][1] += p.quantity
        else:
            grouped[key] = [p.product, p.quantity]

    return OrderedDict((key, tuple(grouped[key])) for key in sorted(grouped))


def _check_availability(priced: list[_PricedLine]) -> None:
    for (_, variant), (product, qty) in _aggregate_quantities(priced).items():
        available = available_quantity(product=product, variant=variant)
        if qty > available:
            raise InsufficientStockError(
                InsufficientStock(
                    product_id=product.pk,
                    product_name=product.name,
                    variant=variant,
                    requested=qty,
                    available=available,
                )
            )


def _validate_payments(payments) -> list[PaymentRequest]:
    cleaned = []
    for payment in payments:
        method = (payment.method or "").strip().upper()
        if method not in PaymentMethod.values:
            raise PaymentValidationError(f"Unknown payment method: {payment.method!r}")

        amount = _money(payment.amount)
        if amount <= ZERO:
            raise PaymentValidationError("Payment amounts must be greater than zero")

        cleaned.append(PaymentRequest(method=method, amount=amount, reference=payment.reference or ""))
    return cleaned


def _allocate_change(payments: list[PaymentRequest], change: Decimal) -> list[Decimal]:
    """
    Spread change over cash tenders, last tender first.
    """
    allocation = [ZERO for _ in payments]
    remaining = change

    for idx in reversed(range(len(payments))):
        if remaining <= ZERO:
            break
        if payments[idx].method != PaymentMethod.CASH:
            continue
        portion = min(payments[idx].amount, remaining)
        allocation[idx] = portion
        remaining -= portion

    if remaining > ZERO:
        raise PaymentValidationError("Change can only be given from cash payments")

    return allocation


def _settle_amounts(
    *,
    sale_type: str,
    total: Decimal,
    payments: list[PaymentRequest],
    customer: Customer | None,
) -> _Settlement:
    paid = sum((p.amount for p in payments), ZERO)

    if sale_type == Sale.SaleType.REGULAR:
        if paid < total:
            raise PaymentValidationError(
                f"Payment {paid} does not cover the sale total {total}"
            )
        change = paid - total
        return _Settlement(
            paid_amount=paid,
            credit_amount=ZERO,
            change_amount=change,
            change_by_payment=_allocate_change(payments, change),
        )

    if sale_type == Sale.SaleType.CREDIT:
        if customer is None:
            raise PaymentValidationError("Credit sales require a customer")
        if paid >= total:
            raise PaymentValidationError(
                "Credit sale is fully paid; settle it as a regular sale"
            )

        credit_amount = total - paid
        check = check_credit(customer=customer, amount=credit_amount)
        if not check.allowed:
            raise CreditLimitExceededError(check)

        return _Settlement(
            paid_amount=paid,
            credit_amount=credit_amount,
            change_amount=ZERO,
            change_by_payment=[ZERO for _ in payments],
        )

    raise SettlementValidationError(f"Unknown sale type: {sale_type!r}")


def _load_customer(*, tenant, customer_id) -> Customer | None:
    if customer_id in (None, ""):
        return None

    customer = Customer.objects.filter(tenant=tenant, pk=customer_id).first()
    if customer is None:
        raise SettlementValidationError(f"Customer {customer_id} not found")
    if not customer.is_active:
        raise SettlementValidationError(f"Customer {customer.name} is inactive")
    return customer


# ============================================================
# SETTLE
# ============================================================


def settle(request: SaleRequest) -> Sale:
    """
    Settle a sale. Raises SettlementValidationError (or CreditLimitExceededError)
    before anything is written, ConflictError on contention.

    Post-commit failures never raise; they land on sale.settlement_warnings.

    A ConflictError re-runs the whole settlement (validation included) up to
    SETTLEMENT_MAX_ATTEMPTS times, so a request that lost a stock race is
    re-checked against the winner's committed stock.
    """
    if request.tenant is None:
        raise SettlementValidationError("tenant is required")

    max_attempts = max(1, int(getattr(settings, "SETTLEMENT_MAX_ATTEMPTS", 3) or 1))
    attempt = 1
    while True:
        try:
            sale = _settle_once(request)
            break
        except ConflictError as exc:
            if attempt >= max_attempts:
                logger.warning(
                    "Settlement gave up after %s attempt(s) tenant=%s sqlstate=%s",
                    attempt,
                    request.tenant.slug,
                    exc.sqlstate,
                )
                raise
            logger.info(
                "Settlement conflict tenant=%s attempt=%s sqlstate=%s; retrying",
                request.tenant.slug,
                attempt,
                exc.sqlstate,
            )
            attempt += 1

    for step in SETTLEMENT_STEPS:
        _run_step(sale, step, user=request.user)

    sale.refresh_from_db()
    return sale


def _settle_once(request: SaleRequest) -> Sale:
    tenant = request.tenant
    sale_type = (request.sale_type or Sale.SaleType.REGULAR).upper()

    priced = _price_lines(tenant=tenant, lines=request.lines)
    _check_availability(priced)

    totals = _totals(priced)
    payments = _validate_payments(request.payments)
    customer = _load_customer(tenant=tenant, customer_id=request.customer_id)
    settlement = _settle_amounts(
        sale_type=sale_type,
        total=totals.total_amount,
        payments=payments,
        customer=customer,
    )

    with serializable_atomic():
        sale = _persist_sale(
            request=request,
            sale_type=sale_type,
            customer=customer,
            priced=priced,
            totals=totals,
            payments=payments,
            settlement=settlement,
        )

    logger.info(
        "Sale %s settled tenant=%s type=%s total=%s paid=%s credit=%s",
        sale.sale_number,
        tenant.slug,
        sale.sale_type,
        sale.total_amount,
        sale.paid_amount,
        sale.credit_amount,
    )
    return sale


def _persist_sale(*, request, sale_type, customer, priced, totals, payments, settlement) -> Sale:
    tenant = request.tenant
    number = next_document_number(tenant=tenant, kind=DocumentSequence.Kind.SALE)

    sale = Sale.objects.create(
        tenant=tenant,
        sale_number=number.formatted,
        sale_type=sale_type,
        status=Sale.Status.PENDING,
        customer=customer,
        user=request.user,
        subtotal=totals.subtotal,
        discount_amount=totals.discount_amount,
        tax_amount=totals.tax_amount,
        total_amount=totals.total_amount,
        paid_amount=settlement.paid_amount,
        credit_amount=settlement.credit_amount,
        change_amount=settlement.change_amount,
        cost_amount=totals.cost_amount,
        notes=request.notes or "",
    )

    for p in priced:
        SaleItem.objects.create(
            sale=sale,
            product=p.product,
            variant=p.variant,
            product_name=p.product.name,
            quantity=p.quantity,
            unit_price=p.unit_price,
            unit_cost=p.unit_cost,
            discount_amount=p.discount_amount,
            tax_rate=p.tax_rate,
            tax_amount=p.tax_amount,
            subtotal=p.subtotal,
            total=p.total,
        )

    for payment, change in zip(payments, settlement.change_by_payment):
        SalePayment.objects.create(
            sale=sale,
            method=payment.method,
            amount=payment.amount,
            change_given=change,
            reference=payment.reference,
        )

    for (_, variant), (product, qty) in _aggregate_quantities(priced).items():
        result = adjust(
            product=product,
            delta=-qty,
            reason=StockMovement.Reason.SALE,
            variant=variant,
            user=request.user,
            reference_type=SALE_REFERENCE,
            reference_id=str(sale.pk),
            note=sale.sale_number,
        )
        if isinstance(result, InsufficientStock):
            # Raising inside the atomic block discards the sale, its number and earlier decrements.
            raise InsufficientStockError(result)

    validate_transition(sale=sale, target_status=Sale.Status.COMPLETED)
    sale.status = Sale.Status.COMPLETED
    sale.completed_at = timezone.now()
    sale.save(update_fields=["status", "completed_at"])

    return sale


# ============================================================
# POST-COMMIT STEPS
# ============================================================


def _step_credit(sale: Sale, user) -> None:
    if sale.sale_type != Sale.SaleType.CREDIT or _money(sale.credit_amount) <= ZERO:
        return

    extend(
        customer=sale.customer,
        amount=sale.credit_amount,
        reference_type=SALE_REFERENCE,
        reference_id=str(sale.pk),
        reference_number=sale.sale_number,
        description=f"Venta a crédito {sale.sale_number}",
        created_by=user or sale.user,
    )


def _step_cash_register(sale: Sale, user) -> None:
    register_sale_payments(sale=sale, user=user)


def _step_ledger(sale: Sale, user) -> None:
    if not getattr(settings, "ACCOUNTING_POSTING_ENABLED", False):
        return
    if sale.journal_entry_id:
        return

    entry = find_by_reference(
        tenant=sale.tenant,
        reference_type=SALE_REFERENCE,
        reference_id=str(sale.pk),
    )
    if entry is None:
        entry = post_sale_to_ledger(sale=sale, created_by=user)

    sale.journal_entry = entry
    sale.save(update_fields=["journal_entry"])


def _step_cash_reversal(sale: Sale, user) -> None:
    revert_sale_payments(sale=sale, reason=sale.cancellation_reason, user=user)


STEP_HANDLERS = {
    STEP_CREDIT: _step_credit,
    STEP_CASH_REGISTER: _step_cash_register,
    STEP_LEDGER: _step_ledger,
    STEP_CASH_REVERSAL: _step_cash_reversal,
}

STEP_REQUIRED_STATUS = {
    STEP_CREDIT: Sale.Status.COMPLETED,
    STEP_CASH_REGISTER: Sale.Status.COMPLETED,
    STEP_LEDGER: Sale.Status.COMPLETED,
    STEP_CASH_REVERSAL: Sale.Status.CANCELLED,
}


def _locked_sale(sale: Sale) -> Sale:
    """Caller is inside transaction.atomic()."""
    return Sale.objects.select_for_update().get(pk=sale.pk)


def _record_warning(sale: Sale, step: str, exc: Exception) -> None:
    """
    Append a PostCommitFailure under the sale's row lock.

    Written with a queryset update: the sale may have been cancelled by
    another request since `sale` was loaded, and Sale.save() would reject
    the stale status.
    """
    failure = PostCommitFailure(
        step=step,
        error=str(exc),
        error_type=type(exc).__name__,
        occurred_at=timezone.now().isoformat(),
    )
    with transaction.atomic():
        current = _locked_sale(sale)
        warnings = list(current.settlement_warnings or []) + [failure.as_dict()]
        Sale.objects.filter(pk=sale.pk).update(settlement_warnings=warnings)
    sale.settlement_warnings = warnings


def _clear_warnings(sale: Sale, step: str) -> None:
    with transaction.atomic():
        current = _locked_sale(sale)
        existing = list(current.settlement_warnings or [])
        remaining = [w for w in existing if w.get("step") != step]
        if remaining != existing:
            Sale.objects.filter(pk=sale.pk).update(settlement_warnings=remaining)
    sale.settlement_warnings = remaining


def _run_step(sale: Sale, step: str, *, user=None) -> bool:
    """
    Run one post-commit step on a freshly locked copy of the sale.

    A step whose sale is no longer in the status it needs (e.g. cancelled
    right after settling) is skipped. Any failure is logged and recorded
    as a warning; it never propagates.
    """
    handler = STEP_HANDLERS[step]
    required = STEP_REQUIRED_STATUS[step]
    try:
        with transaction.atomic():
            current = _locked_sale(sale)
            if current.status != required:
                logger.info(
                    "Skipping step %s for sale %s: it is %s, step needs %s",
                    step,
                    current.sale_number,
                    current.status,
                    required,
                )
                return True
            handler(current, user)
    except Exception as exc:
        logger.exception(
            "Post-commit step failed sale=%s number=%s step=%s error=%s",
            sale.pk,
            sale.sale_number,
            step,
            exc,
        )
        _record_warning(sale, step, exc)
        return False

    return True


def retry_post_commit_step(*, sale: Sale, step: str, user=None) -> bool:
    """
    Re-run one post-commit step. Every step is idempotent per sale,
    so retrying a step that already succeeded is a no-op.
    """
    if step not in STEP_HANDLERS:
        raise SettlementValidationError(f"Unknown settlement step: {step!r}")

    sale = Sale.objects.select_related("tenant", "customer").get(pk=sale.pk)
    required = STEP_REQUIRED_STATUS[step]
    if sale.status != required:
        raise InvalidSaleTransitionError(
            f"Step '{step}' needs a {required} sale; {sale.sale_number} is {sale.status}"
        )

    ok = _run_step(sale, step, user=user)
    if ok:
        _clear_warnings(sale, step)
        logger.info("Post-commit step %s succeeded on retry for sale %s", step, sale.sale_number)
    return ok


# ============================================================
# CANCEL
# ============================================================


def cancel(*, sale_id, reason: str = "", user=None, tenant=None) -> Sale:
    """
    Cancel a COMPLETED sale.

    In one transaction: restock every item, mark payments CANCELLED,
    cancel linked credits, reverse the journal entry, flip to CANCELLED.
    The cash register reversal runs afterwards as a best-effort step.
    """
    with serializable_atomic():
        qs = Sale.objects.select_for_update().filter(pk=sale_id)
        if tenant is not None:
            qs = qs.filter(tenant=tenant)
        sale = qs.get()

        if sale.status != Sale.Status.COMPLETED:
            raise InvalidSaleTransitionError(
                f"Only completed sales can be cancelled; {sale.sale_number} is {sale.status}"
            )
        validate_transition(sale=sale, target_status=Sale.Status.CANCELLED)

        try:
            cancel_credits_for_reference(
                tenant=sale.tenant,
                reference_type=SALE_REFERENCE,
                reference_id=str(sale.pk),
                reason=reason,
            )
        except CreditStateError as exc:
            raise InvalidSaleTransitionError(str(exc)) from exc

        restock = {}
        for item in sale.items.select_related("product").order_by("id"):
            key = (str(item.product_id), item.variant)
            product, qty = restock.get(key, (item.product, 0))
            restock[key] = (product, qty + item.quantity)

        for key in sorted(restock):
            product, qty = restock[key]
            adjust_or_raise(
                product=product,
                delta=qty,
                reason=StockMovement.Reason.SALE_CANCELLATION,
                variant=key[1],
                user=user,
                reference_type=SALE_REFERENCE,
                reference_id=str(sale.pk),
                note=f"Anulación {sale.sale_number}",
            )

        for payment in sale.payments.filter(status=SalePayment.Status.COMPLETED):
            payment.status = SalePayment.Status.CANCELLED
            payment.save(update_fields=["status"])

        if sale.journal_entry_id:
            reverse_entry(
                entry=sale.journal_entry,
                reason=reason or f"Anulación venta {sale.sale_number}",
                created_by=user,
            )

        sale.status = Sale.Status.CANCELLED
        sale.cancelled_at = timezone.now()
        sale.cancelled_by = user
        sale.cancellation_reason = reason or ""
        sale.save(update_fields=["status", "cancelled_at", "cancelled_by", "cancellation_reason"])

    logger.info("Sale %s cancelled by %s reason=%r", sale.sale_number, getattr(user, "pk", None), reason)

    _run_step(sale, STEP_CASH_REVERSAL, user=user)
    return sale
