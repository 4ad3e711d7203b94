# accounting/api/serializers/accounts.py

from rest_framework import serializers

from accounting.models.account import Account


class AccountListSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for listing a tenant's chart of accounts.
    UI needs: code, name, nature, type, active flag.
    """

    class Meta:
        model = Account
        fields = ("id", "code", "name", "nature", "account_type", "is_active")
        read_only_fields = fields
