# accounting/api/views/journal_entries.py

"""
PATH: accounting/api/views/journal_entries.py

JOURNAL ENTRIES API

GET  /api/accounting/journal-entries/            (filters: entry_type, status, date range, reference)
GET  /api/accounting/journal-entries/{id}/
POST /api/accounting/journal-entries/            (manual entry; accounting.add_journalentry)
POST /api/accounting/journal-entries/{id}/confirm/
POST /api/accounting/journal-entries/{id}/reverse/

Rules:
- Entries are never edited or deleted through the API
- Reversal posts a mirror entry; the original becomes CANCELLED
"""

from __future__ import annotations

import django_filters
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.journal_entries import (
    JournalEntryCreateSerializer,
    JournalEntrySerializer,
    ReverseEntrySerializer,
)
from accounting.models.journal import JournalEntry
from accounting.services.exceptions import EntryStateError, LedgerValidationError
from accounting.services.journal_entry_service import (
    EntryRequest,
    LineRequest,
    confirm_entry,
    post_entry,
    reverse_entry,
)
from tenants.api.scoping import TenantScopedMixin

ENTRY_ADD_PERMISSION = "accounting.add_journalentry"
ENTRY_CHANGE_PERMISSION = "accounting.change_journalentry"


class JournalEntryFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="entry_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="entry_date", lookup_expr="lte")

    class Meta:
        model = JournalEntry
        fields = ["entry_type", "status", "reference_type", "reference_id"]


@extend_schema(tags=["accounting"])
class JournalEntryViewSet(
    TenantScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    filterset_class = JournalEntryFilter

    def get_queryset(self):
        return (
            JournalEntry.objects.filter(tenant=self.get_tenant())
            .select_related("reversal_entry")
            .prefetch_related("lines__account")
            .order_by("-entry_date", "-created_at")
        )

    def _denied(self, permission: str):
        if self.request.user.has_perm(permission):
            return None
        return Response(
            {"detail": "You do not have permission to post journal entries."},
            status=status.HTTP_403_FORBIDDEN,
        )

    @extend_schema(request=JournalEntryCreateSerializer, responses={201: JournalEntrySerializer})
    def create(self, request, *args, **kwargs):
        denied = self._denied(ENTRY_ADD_PERMISSION)
        if denied:
            return denied

        s = JournalEntryCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            entry = post_entry(
                EntryRequest(
                    tenant=self.get_tenant(),
                    entry_type=data["entry_type"],
                    entry_date=data.get("entry_date"),
                    description=data["description"],
                    notes=data.get("notes", ""),
                    draft=data.get("draft", False),
                    created_by=request.user,
                    lines=[LineRequest(**line) for line in data["lines"]],
                )
            )
        except LedgerValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(JournalEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: JournalEntrySerializer})
    @action(detail=True, methods=["post"], url_path="confirm")
    def confirm(self, request, pk=None):
        denied = self._denied(ENTRY_CHANGE_PERMISSION)
        if denied:
            return denied

        try:
            entry = confirm_entry(entry=self.get_object())
        except EntryStateError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except LedgerValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(JournalEntrySerializer(entry).data, status=status.HTTP_200_OK)

    @extend_schema(request=ReverseEntrySerializer, responses={201: JournalEntrySerializer})
    @action(detail=True, methods=["post"], url_path="reverse")
    def reverse(self, request, pk=None):
        denied = self._denied(ENTRY_CHANGE_PERMISSION)
        if denied:
            return denied

        s = ReverseEntrySerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            reversal = reverse_entry(
                entry=self.get_object(),
                reason=s.validated_data.get("reason", ""),
                created_by=request.user,
            )
        except EntryStateError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except LedgerValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(JournalEntrySerializer(reversal).data, status=status.HTTP_201_CREATED)
