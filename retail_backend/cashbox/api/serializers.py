# cashbox/api/serializers.py

from rest_framework import serializers

from accounting.models.choices import PaymentMethod
from cashbox.models import CashMovement, CashRegister


class CashRegisterSerializer(serializers.ModelSerializer):
    closing_entry_number = serializers.CharField(
        source="closing_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = CashRegister
        fields = [
            "id",
            "name",
            "session_number",
            "status",
            "opening_balance",
            "expected_balance",
            "counted_balance",
            "difference",
            "total_sales",
            "total_refunds",
            "total_transactions",
            "opened_by",
            "opened_at",
            "closed_by",
            "closed_at",
            "closing_entry",
            "closing_entry_number",
            "notes",
        ]
        read_only_fields = fields


class CashMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = CashMovement
        fields = [
            "id",
            "movement_type",
            "direction",
            "payment_method",
            "amount",
            "balance_before",
            "balance_after",
            "reference_type",
            "reference_id",
            "reference_number",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class OpenRegisterSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, default="Caja principal", max_length=100)
    opening_balance = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CloseRegisterSerializer(serializers.Serializer):
    counted_balance = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ManualMovementSerializer(serializers.Serializer):
    MANUAL_TYPES = (
        CashMovement.MovementType.EXPENSE,
        CashMovement.MovementType.DEPOSIT,
        CashMovement.MovementType.WITHDRAWAL,
        CashMovement.MovementType.ADJUSTMENT,
    )

    movement_type = serializers.ChoiceField(choices=[(t.value, t.label) for t in MANUAL_TYPES])
    direction = serializers.ChoiceField(
        choices=CashMovement.Direction.choices, required=False, allow_null=True, default=None
    )
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    description = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)

    def validate(self, attrs):
        if attrs["movement_type"] == CashMovement.MovementType.ADJUSTMENT and not attrs.get("direction"):
            raise serializers.ValidationError({"direction": "Adjustments require a direction."})
        if attrs["amount"] <= 0:
            raise serializers.ValidationError({"amount": "amount must be > 0"})
        return attrs
