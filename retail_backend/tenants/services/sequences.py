# tenants/services/sequences.py

"""
======================================================
PATH: tenants/services/sequences.py
======================================================
DOCUMENT NUMBERING SERVICE

This module is the ONLY place allowed to advance a DocumentSequence.

Rules:
- Numbers are scoped per tenant, per kind, per calendar year.
- The counter row is locked (select_for_update) and advanced inside the CALLER's
  transaction, so the number and the numbered document commit or roll back together.
- A drawn number is never handed out again: cancelling a document does not
  return its number to the pool.

Format:
- JE-2026-00001 (journal entries)
- POS-2026-00001 (sales)
- CASH-2026-00001 (cash register sessions)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from django.db import IntegrityError, transaction
from django.utils import timezone

from tenants.models import DocumentSequence

NUMBER_PADDING = 5


class SequenceError(Exception):
    """Raised when a document number cannot be allocated."""


@dataclass(frozen=True)
class DocumentNumber:
    kind: str
    year: int
    value: int
    formatted: str

    def __str__(self):
        return self.formatted


def _year_of(at: date | datetime | None) -> int:
    if at is None:
        return timezone.localdate().year
    if isinstance(at, datetime):
        if timezone.is_naive(at):
            at = timezone.make_aware(at, timezone.get_current_timezone())
        return timezone.localtime(at).year
    return at.year


def format_document_number(*, kind: str, year: int, value: int) -> str:
    prefix = DocumentSequence.PREFIXES.get(kind)
    if not prefix:
        raise SequenceError(f"Unknown document kind: {kind!r}")
    return f"{prefix}-{year}-{value:0{NUMBER_PADDING}d}"


def _lock_sequence_row(*, tenant, kind: str, year: int) -> DocumentSequence:
    qs = DocumentSequence.objects.select_for_update().filter(
        tenant=tenant, kind=kind, year=year
    )
    seq = qs.first()
    if seq is not None:
        return seq

    # First number of the year: create the row, tolerating a concurrent creator.
    try:
        with transaction.atomic():
            DocumentSequence.objects.create(
                tenant=tenant, kind=kind, year=year, last_value=0
            )
    except IntegrityError:
        pass

    return qs.get()


def next_document_number(*, tenant, kind: str, at: date | datetime | None = None) -> DocumentNumber:
    """
    Allocate the next number for (tenant, kind, year-of-`at`).

    MUST be called inside the transaction that persists the numbered document.
    """
    if tenant is None:
        raise SequenceError("tenant is required")

    if kind not in DocumentSequence.PREFIXES:
        raise SequenceError(f"Unknown document kind: {kind!r}")

    if not transaction.get_connection().in_atomic_block:
        raise SequenceError(
            "next_document_number must run inside the transaction that writes the document"
        )

    year = _year_of(at)
    seq = _lock_sequence_row(tenant=tenant, kind=kind, year=year)

    seq.last_value = int(seq.last_value or 0) + 1
    seq.save(update_fields=["last_value", "updated_at"])

    return DocumentNumber(
        kind=kind,
        year=year,
        value=seq.last_value,
        formatted=format_document_number(kind=kind, year=year, value=seq.last_value),
    )
