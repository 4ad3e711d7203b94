# sales/api/serializers.py

from rest_framework import serializers

from accounting.models.choices import PaymentMethod
from sales.models import Sale, SaleItem, SalePayment
from sales.services.settlement_orchestrator import STEP_HANDLERS


class SaleItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleItem
        fields = [
            "id",
            "product",
            "product_name",
            "variant",
            "quantity",
            "unit_price",
            "unit_cost",
            "discount_amount",
            "tax_rate",
            "tax_amount",
            "subtotal",
            "total",
        ]
        read_only_fields = fields


class SalePaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalePayment
        fields = ["id", "method", "amount", "change_given", "reference", "status"]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    items = SaleItemSerializer(many=True, read_only=True)
    payments = SalePaymentSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True, default=None)
    journal_entry_number = serializers.CharField(
        source="journal_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = Sale
        fields = [
            "id",
            "sale_number",
            "sale_type",
            "status",
            "customer",
            "customer_name",
            "subtotal",
            "discount_amount",
            "tax_amount",
            "total_amount",
            "paid_amount",
            "credit_amount",
            "change_amount",
            "cost_amount",
            "journal_entry",
            "journal_entry_number",
            "settlement_warnings",
            "notes",
            "items",
            "payments",
            "created_at",
            "completed_at",
            "cancelled_at",
            "cancellation_reason",
        ]
        read_only_fields = fields


# ==========================================================
# INPUT
# ==========================================================


class SaleLineInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    variant = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True, default=None
    )
    discount_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, default=0, min_value=0
    )


class SalePaymentInputSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    reference = serializers.CharField(required=False, allow_blank=True, default="")


class SaleCreateSerializer(serializers.Serializer):
    sale_type = serializers.ChoiceField(choices=Sale.SaleType.choices, default=Sale.SaleType.REGULAR)
    customer_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    lines = SaleLineInputSerializer(many=True, allow_empty=False)
    payments = SalePaymentInputSerializer(many=True, required=False, default=list)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class SaleCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class SaleRetrySerializer(serializers.Serializer):
    step = serializers.ChoiceField(choices=sorted(STEP_HANDLERS))
