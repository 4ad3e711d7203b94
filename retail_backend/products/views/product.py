# products/views/product.py

"""
PRODUCT VIEWSET

Purpose:
- Staff product management endpoints (list, retrieve, create, update)
- Products are never deleted: deactivate with is_active=false

Rules:
- Tenant-scoped (X-Tenant header)
- total_stock is annotated from StockRecord to avoid N+1 on lists
"""

from django.db.models import IntegerField, Q, Sum
from django.db.models.functions import Coalesce
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from products.models import Product
from products.serializers import ProductSerializer
from tenants.api.scoping import TenantScopedMixin


@extend_schema_view(
    list=extend_schema(
        tags=["products"],
        parameters=[
            OpenApiParameter("q", str, description="Search by name or SKU"),
            OpenApiParameter("is_active", str, description="true | false"),
        ],
    ),
    retrieve=extend_schema(tags=["products"]),
    create=extend_schema(tags=["products"]),
    update=extend_schema(tags=["products"]),
    partial_update=extend_schema(tags=["products"]),
)
class ProductViewSet(TenantScopedMixin, viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ["get", "post", "put", "patch", "head", "options"]

    def get_queryset(self):
        qs = Product.objects.filter(tenant=self.get_tenant()).annotate(
            total_stock=Coalesce(
                Sum("stock_records__quantity"), 0, output_field=IntegerField()
            )
        )

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(sku__icontains=q))

        active = self.request.query_params.get("is_active")
        if active in ("true", "false"):
            qs = qs.filter(is_active=active == "true")

        return qs.order_by("name")

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if getattr(self, "swagger_fake_view", False):
            return context
        context["tenant"] = self.get_tenant()
        return context

    def perform_create(self, serializer):
        serializer.save(tenant=self.get_tenant())
