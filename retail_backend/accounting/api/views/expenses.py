# accounting/api/views/expenses.py

"""
PATH: accounting/api/views/expenses.py

EXPENSES API

GET  /api/accounting/expenses/
POST /api/accounting/expenses/
    - Requires permission: accounting.add_expense
    - Creates expense + posts to ledger (atomic)
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.expenses import (
    ExpenseCreateSerializer,
    ExpenseSerializer,
)
from accounting.models.expense import Expense
from accounting.services.exceptions import LedgerValidationError
from accounting.services.expense_service import create_expense_and_post
from tenants.api.scoping import TenantScopedMixin

EXPENSE_POST_PERMISSION = "accounting.add_expense"


class ExpenseListCreateView(TenantScopedMixin, GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ExpenseCreateSerializer

    @extend_schema(tags=["accounting"], responses=ExpenseSerializer(many=True))
    def get(self, request, *args, **kwargs):
        qs = (
            Expense.objects.filter(tenant=self.get_tenant())
            .select_related("journal_entry")
            .order_by("-expense_date", "-created_at")
        )
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(ExpenseSerializer(page, many=True).data)
        return Response(ExpenseSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["accounting"],
        request=ExpenseCreateSerializer,
        responses={201: ExpenseSerializer, 400: dict, 403: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(EXPENSE_POST_PERMISSION):
            return Response(
                {"detail": "You do not have permission to post expenses."},
                status=status.HTTP_403_FORBIDDEN,
            )

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            expense = create_expense_and_post(
                tenant=self.get_tenant(),
                user=request.user,
                category=data["category"],
                subtotal=data["subtotal"],
                tax_amount=data.get("tax_amount", 0),
                payment_method=data["payment_method"],
                expense_date=data.get("expense_date"),
                vendor=data.get("vendor", ""),
                narration=data.get("narration", ""),
            )
        except LedgerValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(ExpenseSerializer(expense).data, status=status.HTTP_201_CREATED)
