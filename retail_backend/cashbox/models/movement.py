# cashbox/models/movement.py

"""
CASH MOVEMENT

Append-only drawer ledger line.

Rules:
- movement_type fixes direction (SALE in, REFUND out, ...); ADJUSTMENT and CLOSING
  carry their own direction
- Only CASH movements change the drawer: for any other method
  balance_after == balance_before
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.choices import PaymentMethod

from .register import CashRegister

ZERO = Decimal("0.00")


class CashMovement(models.Model):
    class MovementType(models.TextChoices):
        OPENING = "OPENING", "Opening"
        SALE = "SALE", "Sale"
        REFUND = "REFUND", "Refund"
        EXPENSE = "EXPENSE", "Expense"
        DEPOSIT = "DEPOSIT", "Deposit"
        WITHDRAWAL = "WITHDRAWAL", "Withdrawal"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"
        CLOSING = "CLOSING", "Closing"

    class Direction(models.TextChoices):
        IN = "IN", "Cash In"
        OUT = "OUT", "Cash Out"

    TYPE_TO_DIRECTION = {
        MovementType.OPENING: Direction.IN,
        MovementType.SALE: Direction.IN,
        MovementType.REFUND: Direction.OUT,
        MovementType.EXPENSE: Direction.OUT,
        MovementType.DEPOSIT: Direction.IN,
        MovementType.WITHDRAWAL: Direction.OUT,
        MovementType.ADJUSTMENT: None,
        MovementType.CLOSING: None,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    register = models.ForeignKey(
        CashRegister,
        on_delete=models.PROTECT,
        related_name="movements",
    )

    movement_type = models.CharField(max_length=12, choices=MovementType.choices)
    direction = models.CharField(max_length=3, choices=Direction.choices)
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    balance_before = models.DecimalField(max_digits=14, decimal_places=2)
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)

    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")
    reference_number = models.CharField(max_length=50, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cash_movements",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gte=0),
                name="chk_cash_movement_amount_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["register", "created_at"], name="cashmv_register_created_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="cashmv_reference_idx"),
        ]

    def __str__(self):
        return f"{self.register_id} | {self.movement_type} {self.direction} {self.amount}"

    @property
    def moves_drawer(self) -> bool:
        return self.payment_method == PaymentMethod.CASH

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == self.Direction.IN else -self.amount

    def clean(self):
        if self.amount is None or self.amount < 0:
            raise ValidationError({"amount": "Amount cannot be negative"})

        expected = self.TYPE_TO_DIRECTION.get(self.movement_type)
        if expected and self.direction != expected:
            raise ValidationError(f"{self.movement_type} requires direction={expected}")

        if self.movement_type != self.MovementType.CLOSING:
            delta = self.signed_amount if self.moves_drawer else ZERO
            if self.balance_after != self.balance_before + delta:
                raise ValidationError("balance_after does not match balance_before and amount")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Cash movements are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Cash movements cannot be deleted")
