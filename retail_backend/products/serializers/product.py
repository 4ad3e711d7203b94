# products/serializers/product.py

"""
PRODUCT SERIALIZER

Purpose:
- Catalog serializer for staff product management.
- Stock is read from StockRecord (annotated on the queryset by ProductViewSet),
  never written through this serializer.
"""

from rest_framework import serializers

from products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """
    GUARANTEES:
    - sku is unique per tenant (checked here for a clean 400)
    - Stock is read-only (changed only through the stock ledger)
    """

    total_stock = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "sale_price",
            "cost_price",
            "tax_rate",
            "total_stock",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "total_stock",
            "created_at",
            "updated_at",
        ]

    def validate_sku(self, value):
        sku = (value or "").strip().upper()
        tenant = self.context.get("tenant")
        if tenant is None:
            return sku

        qs = Product.objects.filter(tenant=tenant, sku=sku)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("A product with this SKU already exists.")
        return sku
