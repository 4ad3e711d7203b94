# products/views/stock.py

"""
PATH: products/views/stock.py

STOCK ADJUSTMENT API

POST /api/products/stock/adjust/
    - Requires permission: products.add_stockmovement
    - Applies a signed delta through the stock ledger (row-locked, audited)

Errors:
- unknown product -> 404
- invalid reason/direction -> 400
- decrement beyond available -> 400 with "Insufficient stock for ..."
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.models import Product
from products.serializers import StockAdjustResultSerializer, StockAdjustSerializer
from products.services.stock_ledger import (
    InsufficientStock,
    StockLedgerError,
    adjust,
)
from tenants.api.scoping import TenantScopedMixin

STOCK_ADJUST_PERMISSION = "products.add_stockmovement"


class StockAdjustView(TenantScopedMixin, GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = StockAdjustSerializer

    @extend_schema(
        tags=["products"],
        request=StockAdjustSerializer,
        responses={201: StockAdjustResultSerializer, 400: dict, 403: dict, 404: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(STOCK_ADJUST_PERMISSION):
            return Response(
                {"detail": "You do not have permission to adjust stock."},
                status=status.HTTP_403_FORBIDDEN,
            )

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        product = Product.objects.filter(
            tenant=self.get_tenant(), pk=data["product_id"]
        ).first()
        if product is None:
            return Response({"detail": "Product not found."}, status=status.HTTP_404_NOT_FOUND)

        try:
            result = adjust(
                product=product,
                variant=data.get("variant", ""),
                delta=data["delta"],
                reason=data["reason"],
                user=request.user,
                reference_type="ManualAdjustment",
                note=data.get("note", ""),
            )
        except StockLedgerError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if isinstance(result, InsufficientStock):
            return Response(
                {
                    "detail": result.message,
                    "available": result.available,
                    "requested": result.requested,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        payload = StockAdjustResultSerializer(
            {"record": result.record, "movement": result.movement}
        ).data
        return Response(payload, status=status.HTTP_201_CREATED)
