# sales/models/sale.py

"""
======================================================
PATH: sales/models/sale.py
======================================================
SALE MODEL (SETTLED POS SALE)

Lifecycle:
- PENDING    : rows written inside the settlement transaction
- COMPLETED  : stock decremented, totals frozen
- CANCELLED  : voided; stock restocked, ledger entry reversed
- REFUNDED   : terminal (kept for lifecycle completeness)

Guarantees:
- Financial fields are immutable once the sale leaves PENDING
- total_amount = subtotal - discount_amount + tax_amount
- paid_amount + credit_amount covers the total (change_amount is the cash overpay)
- settlement_warnings records post-commit steps that failed; they never undo the sale
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from tenants.models import Tenant

ZERO = Decimal("0.00")


class Sale(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"
        REFUNDED = "REFUNDED", "Refunded"

    class SaleType(models.TextChoices):
        REGULAR = "REGULAR", "Regular"
        CREDIT = "CREDIT", "Credit"

    _IMMUTABLE_FIELDS_AFTER_COMPLETION = (
        "sale_number",
        "sale_type",
        "customer_id",
        "subtotal",
        "discount_amount",
        "tax_amount",
        "total_amount",
        "paid_amount",
        "credit_amount",
        "change_amount",
        "cost_amount",
        "completed_at",
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="sales",
    )
    sale_number = models.CharField(max_length=32)

    sale_type = models.CharField(max_length=10, choices=SaleType.choices, default=SaleType.REGULAR)
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING)

    customer = models.ForeignKey(
        "credits.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sales",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)

    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    credit_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    change_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    cost_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sales",
    )
    settlement_warnings = models.JSONField(default=list, blank=True)

    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales_cancelled",
    )
    cancellation_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "sale_number"],
                name="uniq_sale_tenant_number",
            ),
            models.CheckConstraint(
                condition=Q(subtotal__gte=0)
                & Q(discount_amount__gte=0)
                & Q(tax_amount__gte=0)
                & Q(total_amount__gte=0),
                name="chk_sale_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__gte=0) & Q(credit_amount__gte=0) & Q(change_amount__gte=0),
                name="chk_sale_settlement_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(discount_amount__lte=F("subtotal")),
                name="chk_sale_discount_within_subtotal",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "status", "created_at"], name="sale_tenant_status_idx"),
            models.Index(fields=["tenant", "customer"], name="sale_tenant_customer_idx"),
        ]

    def __str__(self):
        return f"{self.sale_number} ({self.status})"

    # --------------------------------------------------
    # STATE
    # --------------------------------------------------

    @property
    def is_completed(self) -> bool:
        return self.status == self.Status.COMPLETED

    @property
    def is_credit(self) -> bool:
        return self.sale_type == self.SaleType.CREDIT

    @property
    def balance_due(self) -> Decimal:
        return self.credit_amount or ZERO

    # --------------------------------------------------
    # VALIDATION
    # --------------------------------------------------

    def _validate_immutable(self, previous: "Sale") -> None:
        if previous.status == self.Status.PENDING:
            return

        for field in self._IMMUTABLE_FIELDS_AFTER_COMPLETION:
            if getattr(previous, field) != getattr(self, field):
                raise ValidationError(
                    f"Sale {previous.sale_number}: '{field}' cannot change after completion"
                )

        if previous.status in (self.Status.CANCELLED, self.Status.REFUNDED) and previous.status != self.status:
            raise ValidationError(f"Sale {previous.sale_number} is {previous.status} and cannot change status")

    def clean(self):
        if self.is_credit and self.customer_id is None:
            raise ValidationError("Credit sales require a customer")

        if self.customer_id and self.customer.tenant_id != self.tenant_id:
            raise ValidationError("Customer belongs to another tenant")

        expected_total = (self.subtotal or ZERO) - (self.discount_amount or ZERO) + (self.tax_amount or ZERO)
        if self.total_amount != expected_total:
            raise ValidationError(
                f"total_amount {self.total_amount} != subtotal - discount + tax ({expected_total})"
            )

        if self.status != self.Status.PENDING and self.completed_at is None:
            raise ValidationError("Settled sales require completed_at")

        if self.pk and not self._state.adding:
            previous = Sale.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Sales cannot be deleted; cancel them instead")
