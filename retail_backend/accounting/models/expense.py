# accounting/models/expense.py

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from accounting.models.choices import ExpenseCategory, ExpensePaymentMethod
from accounting.models.journal import JournalEntry
from tenants.models import Tenant


class Expense(models.Model):
    """
    Expense or inventory purchase (business event), posted to the ledger via the engine.

    Rule:
    - You may create it unposted
    - You may attach its journal entry exactly once
    - After it is posted in the DB, it becomes immutable
    - Posted expenses cannot be deleted
    """

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="expenses",
    )

    category = models.CharField(max_length=30, choices=ExpenseCategory.choices)

    expense_date = models.DateField(default=timezone.localdate)

    subtotal = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    tax_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)

    payment_method = models.CharField(
        max_length=10,
        choices=ExpensePaymentMethod.choices,
        default=ExpensePaymentMethod.CASH,
    )

    vendor = models.CharField(max_length=150, blank=True, default="")
    narration = models.CharField(max_length=255, blank=True, default="")

    journal_entry = models.OneToOneField(
        JournalEntry,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="expense",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="expenses",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-expense_date", "-created_at"]
        verbose_name = "Expense"
        verbose_name_plural = "Expenses"
        indexes = [
            models.Index(fields=["tenant", "expense_date"], name="exp_tenant_date_idx"),
            models.Index(fields=["tenant", "category"], name="exp_tenant_category_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_amount=F("subtotal") + F("tax_amount")),
                name="chk_expense_total_matches",
            )
        ]

    def __str__(self):
        return f"Expense #{self.id} - {self.total_amount} ({self.expense_date})"

    @property
    def is_posted(self) -> bool:
        return self.journal_entry_id is not None

    def clean(self):
        if self.subtotal is not None:
            self.total_amount = (self.subtotal or Decimal("0.00")) + (self.tax_amount or Decimal("0.00"))

        if self.journal_entry_id and self.journal_entry.tenant_id != self.tenant_id:
            raise ValidationError("Expense journal entry must belong to the same tenant.")

    def save(self, *args, **kwargs):
        # Block edits ONLY if already posted in DB (still allows the one-time link)
        if self.pk and type(self).objects.filter(pk=self.pk, journal_entry__isnull=False).exists():
            raise ValidationError("Expense records are immutable once posted")
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.pk and type(self).objects.filter(pk=self.pk, journal_entry__isnull=False).exists():
            raise ValidationError("Posted expense records cannot be deleted")
        return super().delete(*args, **kwargs)
