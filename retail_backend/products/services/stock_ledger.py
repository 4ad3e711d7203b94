# products/services/stock_ledger.py

"""
======================================================
PATH: products/services/stock_ledger.py
======================================================
STOCK LEDGER SERVICE

This module is the ONLY place allowed to change StockRecord.quantity.

Rules:
- delta is a signed, non-zero integer (+N in, -N out)
- The stock row is locked (select_for_update) BEFORE it is read
- A decrement that would go below zero returns InsufficientStock and writes nothing
- Every applied change writes one append-only StockMovement
- Reason fixes direction (SALE is always out, SALE_CANCELLATION always in, ...);
  ADJUSTMENT may go either way

Callers that hold several rows (sale settlement) must call adjust() in a stable
order (product id, then variant) so concurrent settlements cannot deadlock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from products.models import Product, StockMovement, StockRecord

logger = logging.getLogger(__name__)


class StockLedgerError(Exception):
    """Domain error for invalid stock requests."""


class InsufficientStockError(StockLedgerError):
    """Raised by adjust_or_raise when a decrement exceeds the available quantity."""

    def __init__(self, result: "InsufficientStock"):
        self.result = result
        super().__init__(result.message)


@dataclass(frozen=True)
class StockAdjusted:
    record: StockRecord
    movement: StockMovement
    quantity_before: int
    quantity_after: int

    @property
    def delta(self) -> int:
        return self.quantity_after - self.quantity_before


@dataclass(frozen=True)
class InsufficientStock:
    product_id: object
    product_name: str
    variant: str
    requested: int
    available: int

    @property
    def message(self) -> str:
        label = f"{self.product_name} ({self.variant})" if self.variant else self.product_name
        return (
            f"Insufficient stock for {label}: "
            f"available {self.available}, requested {self.requested}"
        )


def _to_int_delta(value) -> int:
    if value is None or value == "":
        raise StockLedgerError("delta is required")

    if isinstance(value, bool):
        # bool is an int subclass in Python
        raise StockLedgerError("delta must be an integer")

    if isinstance(value, (float, Decimal)) and value != int(value):
        raise StockLedgerError("delta must be an integer")

    try:
        delta = int(value)
    except (TypeError, ValueError):
        raise StockLedgerError("delta must be an integer")

    if delta == 0:
        raise StockLedgerError("delta cannot be 0")

    return delta


def _movement_type_for(reason: str, delta: int) -> str:
    if reason not in StockMovement.Reason.values:
        raise StockLedgerError(f"Unknown stock reason: {reason!r}")

    movement_type = (
        StockMovement.MovementType.IN if delta > 0 else StockMovement.MovementType.OUT
    )
    expected = StockMovement.REASON_TO_MOVEMENT.get(reason)
    if expected and expected != movement_type:
        raise StockLedgerError(f"{reason} requires movement_type={expected}")

    return movement_type


def _lock_record(*, product: Product, variant: str, create: bool) -> StockRecord | None:
    qs = StockRecord.objects.select_for_update().filter(product=product, variant=variant)
    record = qs.first()
    if record is not None or not create:
        return record

    # First stock for this product/variant: create the row, tolerating a concurrent creator.
    try:
        with transaction.atomic():
            StockRecord.objects.create(
                tenant_id=product.tenant_id,
                product=product,
                variant=variant,
                quantity=0,
            )
    except IntegrityError:
        pass

    return qs.get()


@transaction.atomic
def adjust(
    *,
    product: Product,
    delta,
    reason: str,
    variant: str = "",
    user=None,
    reference_type: str = "",
    reference_id: str = "",
    note: str = "",
    unit_cost: Decimal | None = None,
) -> StockAdjusted | InsufficientStock:
    """
    Apply a signed delta to (product, variant) with an audit movement.

    Returns InsufficientStock (and writes nothing) when a decrement exceeds
    the locked quantity.
    """
    if product is None:
        raise StockLedgerError("product is required")

    delta = _to_int_delta(delta)
    variant = (variant or "").strip()
    movement_type = _movement_type_for(reason, delta)

    record = _lock_record(product=product, variant=variant, create=delta > 0)
    before = int(record.quantity) if record is not None else 0

    if delta < 0 and before + delta < 0:
        logger.info(
            "Stock decrement refused: product=%s variant=%r requested=%s available=%s",
            product.pk,
            variant,
            -delta,
            before,
        )
        return InsufficientStock(
            product_id=product.pk,
            product_name=product.name,
            variant=variant,
            requested=-delta,
            available=before,
        )

    now = timezone.now()
    record.quantity = before + delta
    record.last_movement_at = now
    record.save(update_fields=["quantity", "last_movement_at", "updated_at"])

    movement = StockMovement.objects.create(
        record=record,
        movement_type=movement_type,
        reason=reason,
        quantity=abs(delta),
        quantity_before=before,
        quantity_after=record.quantity,
        unit_cost_snapshot=unit_cost if unit_cost is not None else product.cost_price,
        reference_type=reference_type or "",
        reference_id=str(reference_id or ""),
        performed_by=user,
        note=(note or "")[:255],
    )

    logger.debug(
        "Stock %s %+d -> %s (product=%s variant=%r reason=%s)",
        record.pk,
        delta,
        record.quantity,
        product.pk,
        variant,
        reason,
    )

    return StockAdjusted(
        record=record,
        movement=movement,
        quantity_before=before,
        quantity_after=record.quantity,
    )


def adjust_or_raise(**kwargs) -> StockAdjusted:
    result = adjust(**kwargs)
    if isinstance(result, InsufficientStock):
        raise InsufficientStockError(result)
    return result


def available_quantity(*, product: Product, variant: str = "") -> int:
    """Unlocked read; use for pre-checks only, never as a reservation."""
    value = (
        StockRecord.objects.filter(product=product, variant=(variant or "").strip())
        .values_list("quantity", flat=True)
        .first()
    )
    return int(value or 0)
