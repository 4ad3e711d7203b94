# accounting/api/serializers/expenses.py

from rest_framework import serializers

from accounting.models.choices import ExpenseCategory, ExpensePaymentMethod
from accounting.models.expense import Expense


class ExpenseSerializer(serializers.ModelSerializer):
    """
    Output serializer (DB truth) - clean, stable contract.
    """

    journal_entry_number = serializers.CharField(
        source="journal_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = Expense
        fields = [
            "id",
            "category",
            "expense_date",
            "subtotal",
            "tax_amount",
            "total_amount",
            "payment_method",
            "vendor",
            "narration",
            "is_posted",
            "journal_entry",
            "journal_entry_number",
            "created_at",
        ]
        read_only_fields = fields


class ExpenseCreateSerializer(serializers.Serializer):
    """
    Input serializer (Swagger-visible).
    """

    category = serializers.ChoiceField(choices=ExpenseCategory.choices)
    expense_date = serializers.DateField(required=False)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)
    tax_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    payment_method = serializers.ChoiceField(
        choices=ExpensePaymentMethod.choices, default=ExpensePaymentMethod.CASH
    )
    vendor = serializers.CharField(required=False, allow_blank=True, default="")
    narration = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_subtotal(self, value):
        if value <= 0:
            raise serializers.ValidationError("subtotal must be > 0")
        return value

    def validate_tax_amount(self, value):
        if value < 0:
            raise serializers.ValidationError("tax_amount cannot be negative")
        return value
