# products/serializers/stock.py

from rest_framework import serializers

from products.models import StockMovement, StockRecord


class StockRecordSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = StockRecord
        fields = [
            "id",
            "product",
            "product_name",
            "variant",
            "quantity",
            "min_stock_level",
            "is_low_stock",
            "last_movement_at",
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = [
            "id",
            "movement_type",
            "reason",
            "quantity",
            "quantity_before",
            "quantity_after",
            "unit_cost_snapshot",
            "reference_type",
            "reference_id",
            "note",
            "created_at",
        ]
        read_only_fields = fields


class StockAdjustSerializer(serializers.Serializer):
    """
    Input serializer (Swagger-visible).

    delta:
      +N -> stock in
      -N -> stock out
    """

    product_id = serializers.UUIDField()
    variant = serializers.CharField(required=False, allow_blank=True, default="")
    delta = serializers.IntegerField()
    reason = serializers.ChoiceField(
        choices=StockMovement.Reason.choices,
        default=StockMovement.Reason.ADJUSTMENT,
    )
    note = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)

    def validate_delta(self, value):
        if value == 0:
            raise serializers.ValidationError("delta cannot be 0")
        return value


class StockAdjustResultSerializer(serializers.Serializer):
    record = StockRecordSerializer()
    movement = StockMovementSerializer()
