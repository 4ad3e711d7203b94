# credits/api/views.py

"""
PATH: credits/api/views.py

CUSTOMER CREDIT API

GET|POST  /api/credits/customers/
GET       /api/credits/customers/{id}/credits/     (open + historical credits)
GET|POST  /api/credits/customers/{id}/payments/    (FIFO allocation)
GET       /api/credits/summary/

Rules:
- Tenant-scoped (X-Tenant header)
- Payments require permission credits.add_creditpayment
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.exceptions import LedgerValidationError
from credits.api.serializers import (
    CreditPaymentCreateSerializer,
    CreditPaymentSerializer,
    CustomerCreditSerializer,
    CustomerSerializer,
)
from credits.models import CreditPayment, Customer, CustomerCredit
from credits.services.credit_subledger import allocate_payment, credit_summary
from credits.services.exceptions import CreditSubledgerError
from tenants.api.scoping import TenantScopedMixin

CREDIT_PAYMENT_PERMISSION = "credits.add_creditpayment"


class CustomerViewSet(TenantScopedMixin, viewsets.ModelViewSet):
    serializer_class = CustomerSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ["get", "post", "put", "patch", "head", "options"]

    def get_queryset(self):
        qs = Customer.objects.filter(tenant=self.get_tenant())
        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(name__icontains=q)
        return qs.order_by("name")

    def perform_create(self, serializer):
        serializer.save(tenant=self.get_tenant())

    @extend_schema(tags=["credits"], responses=CustomerCreditSerializer(many=True))
    @action(detail=True, methods=["get"], url_path="credits")
    def credits(self, request, pk=None):
        customer = self.get_object()
        qs = CustomerCredit.objects.filter(customer=customer).order_by("due_date", "created_at")

        status_param = (request.query_params.get("status") or "").strip().upper()
        if status_param == "OPEN":
            qs = qs.filter(status__in=CustomerCredit.OPEN_STATUSES)
        elif status_param:
            qs = qs.filter(status=status_param)

        return Response(CustomerCreditSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["credits"],
        request=CreditPaymentCreateSerializer,
        responses={200: CreditPaymentSerializer(many=True), 201: CreditPaymentSerializer, 400: dict, 403: dict},
    )
    @action(detail=True, methods=["get", "post"], url_path="payments")
    def payments(self, request, pk=None):
        customer = self.get_object()

        if request.method == "GET":
            qs = (
                CreditPayment.objects.filter(customer=customer)
                .select_related("journal_entry")
                .prefetch_related("allocations__credit")
            )
            return Response(CreditPaymentSerializer(qs, many=True).data, status=status.HTTP_200_OK)

        if not request.user.has_perm(CREDIT_PAYMENT_PERMISSION):
            return Response(
                {"detail": "You do not have permission to register credit payments."},
                status=status.HTTP_403_FORBIDDEN,
            )

        s = CreditPaymentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = allocate_payment(
                customer=customer,
                amount=data["amount"],
                payment_method=data["payment_method"],
                notes=data.get("notes", ""),
                received_by=request.user,
                withholding_amount=data["withholding_amount"],
            )
        except (CreditSubledgerError, LedgerValidationError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(CreditPaymentSerializer(result.payment).data, status=status.HTTP_201_CREATED)


class CreditSummaryView(TenantScopedMixin, GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["credits"], responses=dict)
    def get(self, request, *args, **kwargs):
        return Response(credit_summary(tenant=self.get_tenant()), status=status.HTTP_200_OK)
