# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Represents a single accounting transaction (journal header).

Guarantees:
- entry_number is drawn from the tenant's JE sequence (never reused)
- Non-cancelled entries are balanced (|debits - credits| < LEDGER_BALANCE_TOLERANCE)
- DRAFT is editable; CONFIRMED is immutable except for the single
  CONFIRMED -> CANCELLED transition that links the reversal entry
- Never deleted
- At most one non-cancelled entry per (tenant, reference_type, reference_id)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from accounting.models.choices import EntryStatus, EntryType
from tenants.models import Tenant

# Fields that may still change once an entry is CONFIRMED (cancellation only).
CANCELLATION_FIELDS = frozenset(
    {"status", "cancelled_at", "cancellation_reason", "reversal_entry_id", "updated_at"}
)


def balance_tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "LEDGER_BALANCE_TOLERANCE", "0.01")))


class JournalEntry(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="journal_entries",
    )

    entry_number = models.CharField(max_length=30)
    entry_date = models.DateField(default=timezone.localdate)

    entry_type = models.CharField(max_length=30, choices=EntryType.choices)
    status = models.CharField(
        max_length=10,
        choices=EntryStatus.choices,
        default=EntryStatus.CONFIRMED,
    )

    description = models.TextField(help_text="Narrative description of the journal entry")

    total_debits = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_credits = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")
    reference_number = models.CharField(max_length=50, blank=True, default="")

    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="journal_entries",
    )

    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True, default="")

    reversal_entry = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        help_text="Entry that reversed this one (set when CANCELLED)",
    )
    reversal_of = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversed_by",
        help_text="Original entry this one reverses",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-entry_date", "-created_at"]
        indexes = [
            models.Index(fields=["tenant", "entry_date"], name="je_tenant_date_idx"),
            models.Index(fields=["tenant", "entry_type"], name="je_tenant_type_idx"),
            models.Index(fields=["tenant", "status"], name="je_tenant_status_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="je_reference_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "entry_number"],
                name="uniq_journal_entry_number",
            ),
            models.UniqueConstraint(
                fields=["tenant", "reference_type", "reference_id"],
                condition=~Q(reference_id="") & ~Q(status=EntryStatus.CANCELLED),
                name="uniq_journal_active_reference",
            ),
            models.CheckConstraint(
                condition=Q(total_debits__gte=0) & Q(total_credits__gte=0),
                name="chk_journal_totals_non_negative",
            ),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"{self.entry_number} – {self.entry_date}"

    @property
    def is_balanced(self) -> bool:
        return abs((self.total_debits or 0) - (self.total_credits or 0)) < balance_tolerance()

    def clean(self):
        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        self.reference_type = (self.reference_type or "").strip()
        self.reference_id = str(self.reference_id or "").strip()

        if self.status != EntryStatus.CANCELLED and not self.is_balanced:
            raise ValidationError(
                f"Journal entry not balanced: debits={self.total_debits} credits={self.total_credits}"
            )

        if self.status == EntryStatus.CANCELLED and self.reversal_entry_id is None:
            raise ValidationError("A cancelled entry must reference its reversal entry")

    def _assert_mutable(self):
        previous = type(self).objects.filter(pk=self.pk).first()
        if previous is None:
            return

        if previous.status == EntryStatus.CANCELLED:
            raise ValidationError("Cancelled journal entries are immutable")

        if previous.status == EntryStatus.CONFIRMED:
            changed = {
                f.attname
                for f in self._meta.concrete_fields
                if getattr(previous, f.attname) != getattr(self, f.attname)
            }
            if changed - CANCELLATION_FIELDS:
                raise ValidationError(
                    "Confirmed journal entries are immutable; post a reversal instead"
                )
            if changed and self.status != EntryStatus.CANCELLED:
                raise ValidationError("A confirmed entry may only move to CANCELLED")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            self._assert_mutable()

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records are immutable and cannot be deleted")
