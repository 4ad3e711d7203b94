# cashbox/api/views.py

"""
PATH: cashbox/api/views.py

CASH REGISTER API

GET       /api/cashbox/registers/
GET       /api/cashbox/registers/current/
POST      /api/cashbox/registers/open/
POST      /api/cashbox/registers/{id}/close/
GET|POST  /api/cashbox/registers/{id}/movements/
GET       /api/cashbox/registers/{id}/summary/

Rules:
- Tenant-scoped (X-Tenant header)
- open/close need cashbox.add_cashregister / cashbox.change_cashregister
- manual movements need cashbox.add_cashmovement
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.exceptions import LedgerValidationError
from cashbox.api.serializers import (
    CashMovementSerializer,
    CashRegisterSerializer,
    CloseRegisterSerializer,
    ManualMovementSerializer,
    OpenRegisterSerializer,
)
from cashbox.models import CashRegister
from cashbox.services.cash_register_service import (
    CashRegisterError,
    close_register,
    get_open_register,
    open_register,
    record_movement,
    register_summary,
)
from tenants.api.scoping import TenantScopedMixin

OPEN_PERMISSION = "cashbox.add_cashregister"
CLOSE_PERMISSION = "cashbox.change_cashregister"
MOVEMENT_PERMISSION = "cashbox.add_cashmovement"


def _forbidden(message: str) -> Response:
    return Response({"detail": message}, status=status.HTTP_403_FORBIDDEN)


class CashRegisterViewSet(TenantScopedMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = CashRegisterSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = CashRegister.objects.filter(tenant=self.get_tenant()).select_related("closing_entry")
        status_param = (self.request.query_params.get("status") or "").strip().upper()
        if status_param:
            qs = qs.filter(status=status_param)
        return qs.order_by("-opened_at")

    @extend_schema(tags=["cashbox"], responses={200: CashRegisterSerializer, 404: dict})
    @action(detail=False, methods=["get"])
    def current(self, request):
        register = get_open_register(tenant=self.get_tenant())
        if register is None:
            return Response({"detail": "No open cash register."}, status=status.HTTP_404_NOT_FOUND)
        return Response(CashRegisterSerializer(register).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["cashbox"],
        request=OpenRegisterSerializer,
        responses={201: CashRegisterSerializer, 400: dict, 403: dict},
    )
    @action(detail=False, methods=["post"])
    def open(self, request):
        if not request.user.has_perm(OPEN_PERMISSION):
            return _forbidden("You do not have permission to open cash registers.")

        s = OpenRegisterSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            register = open_register(
                tenant=self.get_tenant(),
                user=request.user,
                opening_balance=data["opening_balance"],
                name=data.get("name") or "Caja principal",
                notes=data.get("notes", ""),
            )
        except CashRegisterError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(CashRegisterSerializer(register).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["cashbox"],
        request=CloseRegisterSerializer,
        responses={200: CashRegisterSerializer, 400: dict, 403: dict},
    )
    @action(detail=True, methods=["post"])
    def close(self, request, pk=None):
        if not request.user.has_perm(CLOSE_PERMISSION):
            return _forbidden("You do not have permission to close cash registers.")

        register = self.get_object()
        s = CloseRegisterSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            register = close_register(
                register=register,
                counted_balance=s.validated_data["counted_balance"],
                user=request.user,
                notes=s.validated_data.get("notes", ""),
            )
        except (CashRegisterError, LedgerValidationError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(CashRegisterSerializer(register).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["cashbox"],
        request=ManualMovementSerializer,
        responses={200: CashMovementSerializer(many=True), 201: CashMovementSerializer, 400: dict},
    )
    @action(detail=True, methods=["get", "post"])
    def movements(self, request, pk=None):
        register = self.get_object()

        if request.method == "GET":
            return Response(
                CashMovementSerializer(register.movements.all(), many=True).data,
                status=status.HTTP_200_OK,
            )

        if not request.user.has_perm(MOVEMENT_PERMISSION):
            return _forbidden("You do not have permission to record cash movements.")

        s = ManualMovementSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            movement = record_movement(
                register=register,
                movement_type=data["movement_type"],
                amount=data["amount"],
                direction=data.get("direction"),
                payment_method=data["payment_method"],
                description=data.get("description", ""),
                user=request.user,
            )
        except CashRegisterError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(CashMovementSerializer(movement).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["cashbox"], responses=dict)
    @action(detail=True, methods=["get"])
    def summary(self, request, pk=None):
        return Response(register_summary(self.get_object()), status=status.HTTP_200_OK)
