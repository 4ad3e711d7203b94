# sales/models/sale_payment.py

"""
======================================================
PATH: sales/models/sale_payment.py
======================================================
SALE PAYMENT (SPLIT TENDER)

One row per tender used to settle a sale.

Rules:
- amount > 0
- change_given only on CASH rows and never above amount
- Only allowed mutation: COMPLETED -> CANCELLED (when the sale is cancelled)
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from accounting.models import PaymentMethod
from sales.models.sale import Sale

ZERO = Decimal("0.00")


class SalePayment(models.Model):
    class Status(models.TextChoices):
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    change_given = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    reference = models.CharField(max_length=100, blank=True, default="")

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.COMPLETED)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_sale_payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(change_given__gte=0) & Q(change_given__lte=F("amount")),
                name="chk_sale_payment_change_within_amount",
            ),
        ]

    def __str__(self):
        return f"{self.method} {self.amount}"

    @property
    def net_amount(self) -> Decimal:
        return (self.amount or ZERO) - (self.change_given or ZERO)

    def clean(self):
        if self.change_given and self.method != PaymentMethod.CASH:
            raise ValidationError("Change can only be given on cash payments")

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = SalePayment.objects.filter(pk=self.pk).first()
            if previous is not None:
                changed = any(
                    getattr(previous, f) != getattr(self, f)
                    for f in ("method", "amount", "change_given", "reference", "sale_id")
                )
                if changed:
                    raise ValidationError("Sale payments are immutable")
                if previous.status == self.Status.CANCELLED and self.status != previous.status:
                    raise ValidationError("Cancelled payments cannot be reopened")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Sale payments cannot be deleted")
