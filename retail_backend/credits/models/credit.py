# credits/models/credit.py

"""
======================================================
PATH: credits/models/credit.py
======================================================
CUSTOMER CREDIT

One amount owed by a customer (usually the unpaid part of a credit sale).

Guarantees:
- balance == max(0, amount - paid_amount), recomputed on every save
- status follows balance: PAID at zero, PARTIAL once something was paid,
  OVERDUE once due_date < today with a balance left
- OVERDUE is evaluated lazily: on every load and every save (no background sweep)
- CANCELLED is terminal
- Only one non-cancelled credit per (tenant, reference_type, reference_id)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from tenants.models import Tenant

from .customer import Customer

ZERO = Decimal("0.00")


class CustomerCredit(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PARTIAL = "PARTIAL", "Partially Paid"
        PAID = "PAID", "Paid"
        OVERDUE = "OVERDUE", "Overdue"
        CANCELLED = "CANCELLED", "Cancelled"

    OPEN_STATUSES = (Status.PENDING, Status.PARTIAL, Status.OVERDUE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="customer_credits",
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="credits",
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)

    due_date = models.DateField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")
    reference_number = models.CharField(max_length=50, blank=True, default="")
    description = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="customer_credits_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["due_date", "created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_credit_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__gte=0) & Q(paid_amount__lte=F("amount")),
                name="chk_credit_paid_within_amount",
            ),
            models.UniqueConstraint(
                fields=["tenant", "reference_type", "reference_id"],
                condition=~Q(reference_id="") & ~Q(status="CANCELLED"),
                name="uniq_credit_active_reference",
            ),
        ]
        indexes = [
            models.Index(fields=["customer", "status"], name="credit_customer_status_idx"),
            models.Index(fields=["tenant", "due_date"], name="credit_tenant_due_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="credit_reference_idx"),
        ]

    def __str__(self):
        return f"{self.customer_id} | {self.amount} | {self.status}"

    # ------------------------------------------------------
    # Lazy OVERDUE on load
    # ------------------------------------------------------
    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        if not instance.get_deferred_fields() & {"status", "balance", "due_date"}:
            instance.refresh_overdue()
        return instance

    def is_past_due(self, today=None) -> bool:
        if self.due_date is None:
            return False
        today = today or timezone.localdate()
        return self.due_date < today

    @property
    def days_overdue(self) -> int:
        if self.status != self.Status.OVERDUE or self.due_date is None:
            return 0
        return (timezone.localdate() - self.due_date).days

    def refresh_overdue(self, today=None) -> None:
        """In-memory only; persisted on the next save()."""
        if self.status in (self.Status.PENDING, self.Status.PARTIAL):
            if (self.balance or ZERO) > 0 and self.is_past_due(today):
                self.status = self.Status.OVERDUE

    def recompute(self, today=None) -> None:
        if self.status == self.Status.CANCELLED:
            return

        self.balance = max(ZERO, (self.amount or ZERO) - (self.paid_amount or ZERO))

        if self.balance == 0:
            self.status = self.Status.PAID
            if self.paid_at is None:
                self.paid_at = timezone.now()
        elif self.is_past_due(today):
            self.status = self.Status.OVERDUE
        elif (self.paid_amount or ZERO) > 0:
            self.status = self.Status.PARTIAL
        else:
            self.status = self.Status.PENDING

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError({"amount": "Credit amount must be greater than zero"})

        if self.paid_amount is not None and self.paid_amount < 0:
            raise ValidationError({"paid_amount": "Paid amount cannot be negative"})

        if self.paid_amount is not None and self.paid_amount > self.amount:
            raise ValidationError({"paid_amount": "Paid amount cannot exceed the credit amount"})

        if self.customer_id and self.tenant_id and self.customer.tenant_id != self.tenant_id:
            raise ValidationError("Credit tenant must match the customer tenant")

    def save(self, *args, **kwargs):
        self.recompute()
        self.full_clean()

        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {
                "balance",
                "status",
                "paid_at",
                "updated_at",
            }

        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Customer credits cannot be deleted; cancel them instead")
