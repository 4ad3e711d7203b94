# credits/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from accounting.models.choices import PaymentMethod
from credits.models import (
    CreditPayment,
    CreditPaymentAllocation,
    Customer,
    CustomerCredit,
)


class CustomerSerializer(serializers.ModelSerializer):
    credit_used = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    available_credit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Customer
        fields = [
            "id",
            "name",
            "document_number",
            "phone",
            "email",
            "credit_limit",
            "credit_term_days",
            "credit_used",
            "available_credit",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["id", "credit_used", "available_credit", "created_at"]


class CustomerCreditSerializer(serializers.ModelSerializer):
    days_overdue = serializers.IntegerField(read_only=True)

    class Meta:
        model = CustomerCredit
        fields = [
            "id",
            "amount",
            "paid_amount",
            "balance",
            "status",
            "due_date",
            "days_overdue",
            "paid_at",
            "reference_type",
            "reference_id",
            "reference_number",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class CreditPaymentAllocationSerializer(serializers.ModelSerializer):
    reference_number = serializers.CharField(source="credit.reference_number", read_only=True)

    class Meta:
        model = CreditPaymentAllocation
        fields = ["credit", "reference_number", "amount", "balance_after"]
        read_only_fields = fields


class CreditPaymentSerializer(serializers.ModelSerializer):
    allocations = CreditPaymentAllocationSerializer(many=True, read_only=True)
    journal_entry_number = serializers.CharField(
        source="journal_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = CreditPayment
        fields = [
            "id",
            "amount",
            "applied_amount",
            "excess_amount",
            "withholding_amount",
            "payment_method",
            "notes",
            "allocations",
            "journal_entry",
            "journal_entry_number",
            "created_at",
        ]
        read_only_fields = fields


class CreditPaymentCreateSerializer(serializers.Serializer):
    """
    Input serializer (Swagger-visible).
    """

    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, default=PaymentMethod.CASH
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    withholding_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, default=Decimal("0.00")
    )

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("amount must be > 0")
        return value

    def validate(self, attrs):
        withholding = attrs.get("withholding_amount") or Decimal("0.00")
        if withholding < 0 or withholding > attrs["amount"]:
            raise serializers.ValidationError(
                {"withholding_amount": "withholding_amount must be between 0 and amount"}
            )
        return attrs
