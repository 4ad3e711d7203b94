# credits/models/payment.py

"""
CREDIT PAYMENTS

A CreditPayment is money received from a customer against their open credits.
Each CreditPaymentAllocation records how much of it went to one credit.

Both are append-only; the only later write is linking the journal entry.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.choices import PaymentMethod
from tenants.models import Tenant

from .credit import CustomerCredit
from .customer import Customer

ZERO = Decimal("0.00")


class CreditPayment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="credit_payments",
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="credit_payments",
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    applied_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    excess_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    withholding_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=ZERO,
        help_text="Part of applied_amount settled by a tax withholding certificate instead of money",
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    notes = models.TextField(blank=True, default="")

    journal_entry = models.OneToOneField(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="credit_payment",
    )

    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="credit_payments_received",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_credit_payment_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["customer", "created_at"], name="cpay_customer_created_idx"),
        ]

    def __str__(self):
        return f"{self.customer_id} paid {self.amount} ({self.payment_method})"

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError({"amount": "Payment amount must be greater than zero"})
        if (self.applied_amount or ZERO) + (self.excess_amount or ZERO) != self.amount:
            raise ValidationError("applied_amount + excess_amount must equal amount")
        withholding = self.withholding_amount or ZERO
        if withholding < 0 or withholding > (self.applied_amount or ZERO):
            raise ValidationError(
                {"withholding_amount": "Withholding must be between zero and the applied amount"}
            )

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.full_clean(exclude=["journal_entry"])
        else:
            update_fields = set(kwargs.get("update_fields") or ())
            if update_fields != {"journal_entry"}:
                raise ValidationError("Credit payments are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Credit payments cannot be deleted")


class CreditPaymentAllocation(models.Model):
    payment = models.ForeignKey(
        CreditPayment,
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    credit = models.ForeignKey(
        CustomerCredit,
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_credit_allocation_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["payment", "credit"],
                name="uniq_credit_allocation_payment_credit",
            ),
        ]

    def __str__(self):
        return f"{self.payment_id} -> {self.credit_id}: {self.amount}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Credit payment allocations are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Credit payment allocations cannot be deleted")
