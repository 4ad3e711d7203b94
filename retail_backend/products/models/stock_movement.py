# products/models/stock_movement.py

"""
STOCK LEDGER ENTRY

Immutable record of one change to a StockRecord.

GUARANTEES:
- Append-only (no updates, no deletes)
- Movement direction validated against reason (ADJUSTMENT may go either way)
- quantity_after == quantity_before +/- quantity, and never below zero
- unit_cost_snapshot keeps the product cost at movement time for audit reconstruction
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .stock_record import StockRecord


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        INITIAL = "INITIAL", "Initial Stock"
        PURCHASE = "PURCHASE", "Purchase"
        SALE = "SALE", "Sale"
        SALE_CANCELLATION = "SALE_CANCELLATION", "Sale Cancellation"
        RETURN_CUSTOMER = "RETURN_CUSTOMER", "Customer Return"
        ADJUSTMENT = "ADJUSTMENT", "Manual Adjustment"
        DAMAGE = "DAMAGE", "Damaged Stock"
        EXPIRY = "EXPIRY", "Expired Stock"

    REASON_TO_MOVEMENT = {
        Reason.INITIAL: MovementType.IN,
        Reason.PURCHASE: MovementType.IN,
        Reason.SALE: MovementType.OUT,
        Reason.SALE_CANCELLATION: MovementType.IN,
        Reason.RETURN_CUSTOMER: MovementType.IN,
        Reason.ADJUSTMENT: None,
        Reason.DAMAGE: MovementType.OUT,
        Reason.EXPIRY: MovementType.OUT,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    record = models.ForeignKey(
        StockRecord, on_delete=models.PROTECT, related_name="movements"
    )

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()
    quantity_before = models.IntegerField()
    quantity_after = models.IntegerField()

    unit_cost_snapshot = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        default=None,
        help_text="Product cost at movement time (immutable).",
    )

    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )
    note = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["record", "created_at"], name="stockmv_record_created_idx"),
            models.Index(fields=["reason"], name="stockmv_reason_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="stockmv_reference_idx"),
        ]

    def clean(self):
        if not self.quantity or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        expected_type = self.REASON_TO_MOVEMENT.get(self.reason)
        if expected_type and self.movement_type != expected_type:
            raise ValidationError(
                f"{self.reason} requires movement_type={expected_type}"
            )

        sign = 1 if self.movement_type == self.MovementType.IN else -1
        if self.quantity_after != self.quantity_before + sign * self.quantity:
            raise ValidationError("quantity_after does not match quantity_before and quantity")

        if self.quantity_after < 0:
            raise ValidationError("Stock movement cannot leave a negative quantity")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    @property
    def signed_quantity(self) -> int:
        if self.movement_type == self.MovementType.OUT:
            return -int(self.quantity)
        return int(self.quantity)

    @property
    def total_cost(self) -> Decimal:
        unit_cost = (
            self.unit_cost_snapshot
            if self.unit_cost_snapshot is not None
            else Decimal("0.00")
        )
        return unit_cost * Decimal(int(self.quantity or 0))

    def __str__(self):
        return f"{self.record_id} | {self.reason} | {self.signed_quantity:+d}"
