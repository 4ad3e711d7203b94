# accounting/api/serializers/journal_entries.py

from rest_framework import serializers

from accounting.models.choices import EntryType, Movement
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalEntryLine


class JournalEntryLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalEntryLine
        fields = ("line_order", "account_code", "account_name", "movement", "amount", "description")
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalEntryLineSerializer(many=True, read_only=True)
    reversal_entry_number = serializers.CharField(
        source="reversal_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = JournalEntry
        fields = (
            "id",
            "entry_number",
            "entry_date",
            "entry_type",
            "status",
            "description",
            "total_debits",
            "total_credits",
            "reference_type",
            "reference_id",
            "reference_number",
            "notes",
            "confirmed_at",
            "cancelled_at",
            "cancellation_reason",
            "reversal_entry",
            "reversal_entry_number",
            "reversal_of",
            "created_at",
            "lines",
        )
        read_only_fields = fields


class LineInputSerializer(serializers.Serializer):
    account_code = serializers.CharField(max_length=10)
    movement = serializers.ChoiceField(choices=Movement.choices)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class JournalEntryCreateSerializer(serializers.Serializer):
    """
    Input serializer for manual entries (adjustments, opening balances).
    """

    entry_type = serializers.ChoiceField(choices=EntryType.choices, default=EntryType.ADJUSTMENT)
    entry_date = serializers.DateField(required=False)
    description = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    draft = serializers.BooleanField(required=False, default=False)
    lines = LineInputSerializer(many=True)

    def validate_lines(self, value):
        if len(value) < 2:
            raise serializers.ValidationError("At least two lines are required")
        return value


class ReverseEntrySerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
