# accounting/models/journal_line.py

"""
======================================================
PATH: accounting/models/journal_line.py
======================================================
JOURNAL ENTRY LINE MODEL

Atomic debit or credit posting to a single account.

Guarantees:
- Write-once (no updates, no deletes)
- Amount is always positive; direction is carried by movement
- Line and entry belong to the same tenant
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.choices import Movement
from accounting.models.journal import JournalEntry


class JournalEntryLine(models.Model):
    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    movement = models.CharField(max_length=6, choices=Movement.choices)

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        help_text="Positive monetary value",
    )

    line_order = models.PositiveIntegerField(default=1)
    description = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Journal Entry Line"
        verbose_name_plural = "Journal Entry Lines"
        ordering = ["entry", "line_order"]
        indexes = [
            models.Index(fields=["account"], name="jel_account_idx"),
            models.Index(fields=["entry", "line_order"], name="jel_entry_order_idx"),
            models.Index(fields=["account", "movement"], name="jel_account_movement_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_journal_line_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.movement} {self.amount} → {self.account}"

    def clean(self):
        if self.movement not in Movement.values:
            raise ValidationError("Invalid movement")

        if self.amount is None or self.amount <= 0:
            raise ValidationError("Line amount must be > 0")

        if self.entry_id and self.account_id:
            if self.account.tenant_id != self.entry.tenant_id:
                raise ValidationError("Line account must belong to the entry's tenant")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalEntryLine records are immutable and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntryLine records are immutable and cannot be deleted")
