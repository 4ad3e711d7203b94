# cashbox/services/cash_register_service.py

"""
======================================================
PATH: cashbox/services/cash_register_service.py
======================================================
CASH REGISTER SERVICE

The ONLY place allowed to open/close registers and write cash movements.

Rules:
- One OPEN register per tenant
- Every movement locks the register row (select_for_update) before reading
  expected_balance, so concurrent sales cannot lose drawer updates
- Only CASH payments move the drawer; other methods are recorded for totals
- Sale registration/reversal is idempotent per sale (safe to retry)
- Closing posts ONLY the counted discrepancy to the ledger
  (surplus -> misc income, shortage -> misc expense), when posting is enabled
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.choices import PaymentMethod
from cashbox.models import CashMovement, CashRegister
from tenants.models import DocumentSequence
from tenants.services.sequences import next_document_number

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

SALE_REFERENCE = "Sale"

MovementType = CashMovement.MovementType
Direction = CashMovement.Direction


class CashRegisterError(Exception):
    """Domain error for cash register operations."""


class RegisterNotOpenError(CashRegisterError):
    pass


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _lock(register: CashRegister) -> CashRegister:
    locked = CashRegister.objects.select_for_update().get(pk=register.pk)
    if not locked.is_open:
        raise RegisterNotOpenError(f"Cash register {locked.session_number} is not open")
    return locked


def get_open_register(*, tenant) -> CashRegister | None:
    return CashRegister.objects.filter(tenant=tenant, status=CashRegister.Status.OPEN).first()


def _write_movement(
    register: CashRegister,
    *,
    movement_type: str,
    amount: Decimal,
    direction: str | None = None,
    payment_method: str = PaymentMethod.CASH,
    reference_type: str = "",
    reference_id: str = "",
    reference_number: str = "",
    description: str = "",
    user=None,
) -> CashMovement:
    """Caller holds the register lock."""
    direction = direction or CashMovement.TYPE_TO_DIRECTION.get(movement_type)
    if direction is None:
        raise CashRegisterError(f"{movement_type} requires an explicit direction")

    before = _money(register.expected_balance)
    delta = ZERO
    if payment_method == PaymentMethod.CASH:
        delta = amount if direction == Direction.IN else -amount

    movement = CashMovement.objects.create(
        register=register,
        movement_type=movement_type,
        direction=direction,
        payment_method=payment_method,
        amount=amount,
        balance_before=before,
        balance_after=before + delta,
        reference_type=reference_type,
        reference_id=str(reference_id or ""),
        reference_number=reference_number,
        description=(description or "")[:255],
        created_by=user,
    )

    if delta:
        register.expected_balance = before + delta
    return movement


# ============================================================
# OPEN
# ============================================================


@transaction.atomic
def open_register(
    *,
    tenant,
    user=None,
    opening_balance=ZERO,
    name: str = "Caja principal",
    notes: str = "",
) -> CashRegister:
    opening_balance = _money(opening_balance)
    if opening_balance < ZERO:
        raise CashRegisterError("Opening balance cannot be negative")

    current = get_open_register(tenant=tenant)
    if current is not None:
        raise CashRegisterError(f"Cash register {current.session_number} is already open")

    number = next_document_number(tenant=tenant, kind=DocumentSequence.Kind.CASH_SESSION)

    try:
        with transaction.atomic():
            register = CashRegister.objects.create(
                tenant=tenant,
                name=(name or "Caja principal").strip(),
                session_number=number.formatted,
                opening_balance=opening_balance,
                expected_balance=ZERO,
                opened_by=user,
                notes=notes or "",
            )
    except IntegrityError as exc:
        raise CashRegisterError("Another cash register was opened concurrently") from exc

    _write_movement(
        register,
        movement_type=MovementType.OPENING,
        amount=opening_balance,
        reference_type="CashRegister",
        reference_id=str(register.pk),
        reference_number=register.session_number,
        description=f"Apertura {register.session_number}",
        user=user,
    )
    register.save(update_fields=["expected_balance"])

    logger.info(
        "Cash register %s opened tenant=%s opening=%s",
        register.session_number,
        tenant.slug,
        opening_balance,
    )
    return register


# ============================================================
# MANUAL MOVEMENTS
# ============================================================


@transaction.atomic
def record_movement(
    *,
    register: CashRegister,
    movement_type: str,
    amount,
    direction: str | None = None,
    payment_method: str = PaymentMethod.CASH,
    description: str = "",
    reference_type: str = "",
    reference_id: str = "",
    user=None,
) -> CashMovement:
    """Deposits, withdrawals, expenses and adjustments on an OPEN register."""
    if movement_type in (MovementType.OPENING, MovementType.CLOSING, MovementType.SALE):
        raise CashRegisterError(f"{movement_type} movements are written by the register itself")

    amount = _money(amount)
    if amount <= ZERO:
        raise CashRegisterError("Amount must be greater than zero")

    locked = _lock(register)

    expected = CashMovement.TYPE_TO_DIRECTION.get(movement_type)
    if expected and direction and direction != expected:
        raise CashRegisterError(f"{movement_type} requires direction={expected}")

    if (direction or expected) == Direction.OUT and payment_method == PaymentMethod.CASH:
        if amount > _money(locked.expected_balance):
            raise CashRegisterError(
                f"Not enough cash in the drawer: available {locked.expected_balance}, requested {amount}"
            )

    movement = _write_movement(
        locked,
        movement_type=movement_type,
        amount=amount,
        direction=direction,
        payment_method=payment_method,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        user=user,
    )
    locked.save(update_fields=["expected_balance"])
    return movement


# ============================================================
# SALES
# ============================================================


@transaction.atomic
def register_sale_payments(*, sale, user=None) -> list[CashMovement] | None:
    """
    Record a settled sale's payments on the tenant's OPEN register.
    Returns None (skipped) when no register is open.

    The "already registered" check runs under the register lock, so two
    concurrent retries for the same sale register it once.
    """
    register = get_open_register(tenant=sale.tenant)
    locked = _lock(register) if register is not None else None

    existing = list(
        CashMovement.objects.filter(
            reference_type=SALE_REFERENCE,
            reference_id=str(sale.pk),
            movement_type=MovementType.SALE,
        )
    )
    if existing:
        return existing

    if locked is None:
        logger.info("No open cash register for tenant=%s; sale %s not registered", sale.tenant.slug, sale.sale_number)
        return None

    movements = []
    for payment in sale.payments.filter(status="COMPLETED").order_by("id"):
        net = _money(payment.amount) - _money(payment.change_given)
        if net <= ZERO:
            continue
        movements.append(
            _write_movement(
                locked,
                movement_type=MovementType.SALE,
                amount=net,
                payment_method=payment.method,
                reference_type=SALE_REFERENCE,
                reference_id=str(sale.pk),
                reference_number=sale.sale_number,
                description=f"Venta {sale.sale_number}",
                user=user or sale.user,
            )
        )

    locked.total_sales = _money(locked.total_sales) + sum((m.amount for m in movements), ZERO)
    locked.total_transactions = int(locked.total_transactions or 0) + 1
    locked.save(update_fields=["expected_balance", "total_sales", "total_transactions"])

    logger.info(
        "Sale %s registered on %s (%s movement(s))",
        sale.sale_number,
        locked.session_number,
        len(movements),
    )
    return movements


@transaction.atomic
def revert_sale_payments(*, sale, reason: str = "", user=None) -> list[CashMovement] | None:
    """
    Refund a cancelled sale's registered payments from the OPEN register.
    Returns [] when the sale was never registered, None when no register is open.
    """
    ref = dict(reference_type=SALE_REFERENCE, reference_id=str(sale.pk))

    register = get_open_register(tenant=sale.tenant)
    locked = _lock(register) if register is not None else None

    sale_movements = list(CashMovement.objects.filter(movement_type=MovementType.SALE, **ref))
    if not sale_movements:
        return []

    refunds = list(CashMovement.objects.filter(movement_type=MovementType.REFUND, **ref))
    if refunds:
        return refunds

    if locked is None:
        logger.info("No open cash register for tenant=%s; sale %s reversal skipped", sale.tenant.slug, sale.sale_number)
        return None

    movements = [
        _write_movement(
            locked,
            movement_type=MovementType.REFUND,
            amount=original.amount,
            payment_method=original.payment_method,
            reference_number=sale.sale_number,
            description=f"Anulación {sale.sale_number}" + (f": {reason}" if reason else ""),
            user=user,
            **ref,
        )
        for original in sale_movements
    ]

    locked.total_refunds = _money(locked.total_refunds) + sum((m.amount for m in movements), ZERO)
    locked.save(update_fields=["expected_balance", "total_refunds"])
    return movements


# ============================================================
# CLOSE
# ============================================================


@transaction.atomic
def close_register(*, register: CashRegister, counted_balance, user=None, notes: str = "") -> CashRegister:
    counted = _money(counted_balance)
    if counted < ZERO:
        raise CashRegisterError("Counted balance cannot be negative")

    locked = _lock(register)
    expected = _money(locked.expected_balance)
    difference = counted - expected

    CashMovement.objects.create(
        register=locked,
        movement_type=MovementType.CLOSING,
        direction=Direction.IN if difference >= 0 else Direction.OUT,
        payment_method=PaymentMethod.CASH,
        amount=abs(difference),
        balance_before=expected,
        balance_after=counted,
        reference_type="CashRegister",
        reference_id=str(locked.pk),
        reference_number=locked.session_number,
        description=f"Cierre {locked.session_number}: esperado {expected}, contado {counted}",
        created_by=user,
    )

    locked.status = CashRegister.Status.CLOSED
    locked.counted_balance = counted
    locked.difference = difference
    locked.closed_at = timezone.now()
    locked.closed_by = user
    if notes:
        locked.notes = f"{locked.notes}\n{notes}".strip()

    if difference != ZERO and getattr(settings, "ACCOUNTING_POSTING_ENABLED", False):
        from accounting.services.posting import post_register_discrepancy_to_ledger

        locked.closing_entry = post_register_discrepancy_to_ledger(register=locked, created_by=user)

    locked.save()

    log = logger.warning if difference != ZERO else logger.info
    log(
        "Cash register %s closed expected=%s counted=%s difference=%s",
        locked.session_number,
        expected,
        counted,
        difference,
    )
    return locked


# ============================================================
# REPORTS
# ============================================================


def register_summary(register: CashRegister) -> dict:
    """Z-report style totals per movement type and payment method."""
    by_type: dict[str, Decimal] = defaultdict(lambda: ZERO)
    sales_by_method: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for m in register.movements.all():
        by_type[m.movement_type] += m.amount
        if m.movement_type == MovementType.SALE:
            sales_by_method[m.payment_method] += m.amount
        elif m.movement_type == MovementType.REFUND:
            sales_by_method[m.payment_method] -= m.amount

    return {
        "session_number": register.session_number,
        "status": register.status,
        "opened_at": register.opened_at,
        "closed_at": register.closed_at,
        "opening_balance": str(_money(register.opening_balance)),
        "expected_balance": str(_money(register.expected_balance)),
        "counted_balance": None if register.counted_balance is None else str(_money(register.counted_balance)),
        "difference": None if register.difference is None else str(_money(register.difference)),
        "total_transactions": register.total_transactions,
        "totals_by_type": {k: str(v) for k, v in sorted(by_type.items())},
        "net_sales_by_method": {k: str(v) for k, v in sorted(sales_by_method.items())},
    }
