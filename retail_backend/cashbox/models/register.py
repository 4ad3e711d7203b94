# cashbox/models/register.py

"""
======================================================
PATH: cashbox/models/register.py
======================================================
CASH REGISTER SESSION

Guarantees:
- At most one OPEN register per tenant (conditional unique constraint)
- expected_balance is the running drawer cash; only CASH movements change it
- counted_balance/difference/closed_at are written once, when closing
- CLOSED is terminal
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from tenants.models import Tenant

ZERO = Decimal("0.00")


class CashRegister(models.Model):
    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        CLOSED = "CLOSED", "Closed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="cash_registers",
    )
    name = models.CharField(max_length=100, default="Caja principal")
    session_number = models.CharField(max_length=32)

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)

    opening_balance = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    expected_balance = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    counted_balance = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    difference = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    total_sales = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    total_refunds = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    total_transactions = models.PositiveIntegerField(default=0)

    opened_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cash_registers_opened",
    )
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cash_registers_closed",
    )

    opened_at = models.DateTimeField(auto_now_add=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    closing_entry = models.OneToOneField(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="closed_cash_register",
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-opened_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant"],
                condition=Q(status="OPEN"),
                name="uniq_open_register_per_tenant",
            ),
            models.UniqueConstraint(
                fields=["tenant", "session_number"],
                name="uniq_register_session_number",
            ),
            models.CheckConstraint(
                condition=Q(opening_balance__gte=0),
                name="chk_register_opening_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "status"], name="reg_tenant_status_idx"),
        ]

    def __str__(self):
        return f"{self.session_number} ({self.status})"

    @property
    def is_open(self) -> bool:
        return self.status == self.Status.OPEN

    def clean(self):
        if self.status == self.Status.CLOSED and self.counted_balance is None:
            raise ValidationError("A closed register must have a counted balance")

        if self.pk and not self._state.adding:
            previous = (
                CashRegister.objects.filter(pk=self.pk).values_list("status", flat=True).first()
            )
            if previous == self.Status.CLOSED:
                raise ValidationError("Closed cash registers are immutable")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Cash registers cannot be deleted")
