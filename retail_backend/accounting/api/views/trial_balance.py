"""
PATH: accounting/api/views/trial_balance.py

TRIAL BALANCE API VIEW (READ-ONLY)

GET /api/accounting/trial-balance/?as_of_date=YYYY-MM-DD
"""

from __future__ import annotations

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.services.balance_service import trial_balance
from tenants.api.scoping import TenantScopedMixin


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="as_of_date",
            type=str,
            location=OpenApiParameter.QUERY,
            required=False,
            description="Snapshot date (YYYY-MM-DD). Defaults to today.",
        ),
    ],
    responses={200: dict},
)
class TrialBalanceView(TenantScopedMixin, APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        as_of = None
        raw = (request.query_params.get("as_of_date") or "").strip()
        if raw:
            as_of = parse_date(raw)
            if as_of is None:
                return Response(
                    {"detail": "Invalid as_of_date (expected YYYY-MM-DD)"},
                    status=status.HTTP_400_BAD_REQUEST,
                )

        tenant = self.get_tenant()
        data = trial_balance(tenant=tenant, as_of=as_of)
        data["tenant"] = tenant.slug
        return Response(data, status=status.HTTP_200_OK)
