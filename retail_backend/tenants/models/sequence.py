# tenants/models/sequence.py

"""
======================================================
PATH: tenants/models/sequence.py
======================================================
DOCUMENT SEQUENCE MODEL

One counter row per (tenant, kind, year).

Guarantees:
- last_value only moves forward (never reused, even when documents are cancelled)
- Mutated ONLY by tenants.services.sequences.next_document_number under a row lock,
  inside the same transaction that writes the numbered document
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from tenants.models.tenant import Tenant


class DocumentSequence(models.Model):
    class Kind(models.TextChoices):
        JOURNAL_ENTRY = "JOURNAL_ENTRY", "Journal Entry"
        SALE = "SALE", "Sale"
        CASH_SESSION = "CASH_SESSION", "Cash Register Session"

    PREFIXES = {
        Kind.JOURNAL_ENTRY: "JE",
        Kind.SALE: "POS",
        Kind.CASH_SESSION: "CASH",
    }

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="document_sequences",
    )
    kind = models.CharField(max_length=20, choices=Kind.choices)
    year = models.PositiveIntegerField()
    last_value = models.PositiveBigIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "kind", "year"],
                name="uniq_document_sequence_scope",
            ),
            models.CheckConstraint(
                condition=Q(last_value__gte=0),
                name="chk_document_sequence_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.tenant_id}:{self.kind}:{self.year} -> {self.last_value}"

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = (
                DocumentSequence.objects.filter(pk=self.pk)
                .values_list("last_value", flat=True)
                .first()
            )
            if previous is not None and self.last_value < previous:
                raise ValidationError("Document sequences can never move backwards")

        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Document sequences cannot be deleted")
