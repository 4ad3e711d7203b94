# sales/api/views.py

"""
PATH: sales/api/views.py

SALES API

GET|POST  /api/sales/                (history / settle a sale)
GET       /api/sales/{id}/
POST      /api/sales/{id}/cancel/
POST      /api/sales/{id}/retry/     (re-run a failed post-commit step)

Rules:
- Tenant-scoped (X-Tenant header)
- settle needs sales.add_sale, cancel/retry need sales.change_sale
- validation -> 400, contention -> 409, unknown sale -> 404
"""

import django_filters
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.exceptions import EntryStateError, LedgerValidationError
from backend.transactions import ConflictError
from credits.services.exceptions import CreditSubledgerError
from products.services.stock_ledger import StockLedgerError
from sales.api.serializers import (
    SaleCancelSerializer,
    SaleCreateSerializer,
    SaleRetrySerializer,
    SaleSerializer,
)
from sales.models import Sale
from sales.services.exceptions import SettlementValidationError
from sales.services.settlement_orchestrator import (
    PaymentRequest,
    SaleLineRequest,
    SaleRequest,
    cancel,
    retry_post_commit_step,
    settle,
)
from tenants.api.scoping import TenantScopedMixin

SALE_ADD_PERMISSION = "sales.add_sale"
SALE_CHANGE_PERMISSION = "sales.change_sale"

VALIDATION_ERRORS = (
    SettlementValidationError,
    CreditSubledgerError,
    StockLedgerError,
    LedgerValidationError,
)


class SaleFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    has_warnings = django_filters.BooleanFilter(method="filter_has_warnings")

    class Meta:
        model = Sale
        fields = ["status", "sale_type", "customer"]

    def filter_has_warnings(self, queryset, name, value):
        if value:
            return queryset.exclude(settlement_warnings=[])
        return queryset.filter(settlement_warnings=[])


@extend_schema(tags=["sales"])
class SaleViewSet(
    TenantScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = SaleSerializer
    filterset_class = SaleFilter

    def get_queryset(self):
        return (
            Sale.objects.filter(tenant=self.get_tenant())
            .select_related("customer", "journal_entry")
            .prefetch_related("items", "payments")
            .order_by("-created_at")
        )

    def _denied(self, permission: str, message: str):
        if self.request.user.has_perm(permission):
            return None
        return Response({"detail": message}, status=status.HTTP_403_FORBIDDEN)

    def _reload(self, sale: Sale) -> Sale:
        return self.get_queryset().get(pk=sale.pk)

    @extend_schema(
        request=SaleCreateSerializer,
        responses={201: SaleSerializer, 400: dict, 403: dict, 409: dict},
    )
    def create(self, request, *args, **kwargs):
        denied = self._denied(SALE_ADD_PERMISSION, "You do not have permission to register sales.")
        if denied:
            return denied

        s = SaleCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        sale_request = SaleRequest(
            tenant=self.get_tenant(),
            sale_type=data["sale_type"],
            customer_id=data.get("customer_id"),
            user=request.user,
            notes=data.get("notes", ""),
            lines=[SaleLineRequest(**line) for line in data["lines"]],
            payments=[PaymentRequest(**payment) for payment in data.get("payments", [])],
        )

        try:
            sale = settle(sale_request)
        except VALIDATION_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except ConflictError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(SaleSerializer(self._reload(sale)).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=SaleCancelSerializer,
        responses={200: SaleSerializer, 400: dict, 403: dict, 404: dict, 409: dict},
    )
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        denied = self._denied(SALE_CHANGE_PERMISSION, "You do not have permission to cancel sales.")
        if denied:
            return denied

        sale = self.get_object()
        s = SaleCancelSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            sale = cancel(
                sale_id=sale.pk,
                reason=s.validated_data.get("reason", ""),
                user=request.user,
                tenant=self.get_tenant(),
            )
        except VALIDATION_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except (ConflictError, EntryStateError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(SaleSerializer(self._reload(sale)).data, status=status.HTTP_200_OK)

    @extend_schema(
        request=SaleRetrySerializer,
        responses={200: dict, 400: dict, 403: dict, 404: dict},
    )
    @action(detail=True, methods=["post"], url_path="retry")
    def retry(self, request, pk=None):
        denied = self._denied(SALE_CHANGE_PERMISSION, "You do not have permission to retry sale steps.")
        if denied:
            return denied

        sale = self.get_object()
        s = SaleRetrySerializer(data=request.data)
        s.is_valid(raise_exception=True)
        step = s.validated_data["step"]

        try:
            succeeded = retry_post_commit_step(sale=sale, step=step, user=request.user)
        except SettlementValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                "step": step,
                "succeeded": succeeded,
                "sale": SaleSerializer(self._reload(sale)).data,
            },
            status=status.HTTP_200_OK,
        )
