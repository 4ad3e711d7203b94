"""
PATH: accounting/api/views/vat_position.py

VAT POSITION API VIEW (READ-ONLY)

GET /api/accounting/vat-position/?date_from=YYYY-MM-DD&date_to=YYYY-MM-DD
"""

from __future__ import annotations

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.services.balance_service import BalanceServiceError, vat_position
from tenants.api.scoping import TenantScopedMixin


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="date_from", type=str, location=OpenApiParameter.QUERY, required=False),
        OpenApiParameter(name="date_to", type=str, location=OpenApiParameter.QUERY, required=False),
    ],
    responses={200: dict, 400: dict},
)
class VatPositionView(TenantScopedMixin, APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        bounds = {}
        for name in ("date_from", "date_to"):
            raw = (request.query_params.get(name) or "").strip()
            if not raw:
                bounds[name] = None
                continue
            parsed = parse_date(raw)
            if parsed is None:
                return Response(
                    {"detail": f"Invalid {name} (expected YYYY-MM-DD)"},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            bounds[name] = parsed

        tenant = self.get_tenant()
        try:
            data = vat_position(tenant=tenant, **bounds)
        except BalanceServiceError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        data["tenant"] = tenant.slug
        return Response(data, status=status.HTTP_200_OK)
