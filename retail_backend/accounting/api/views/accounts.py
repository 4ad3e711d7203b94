# accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

CHART OF ACCOUNTS API

GET  /api/accounting/accounts/
POST /api/accounting/accounts/{code}/activate/
POST /api/accounting/accounts/{code}/deactivate/

Rules:
- Tenant-scoped (X-Tenant header)
- Activation toggles are the only mutation (accounting.change_account)
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.models.account import Account
from accounting.services import account_directory
from accounting.services.exceptions import AccountNotFoundError
from tenants.api.scoping import TenantScopedMixin

ACCOUNT_CHANGE_PERMISSION = "accounting.change_account"


class AccountListView(TenantScopedMixin, GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer

    @extend_schema(tags=["accounting"], responses=AccountListSerializer(many=True))
    def get(self, request, *args, **kwargs):
        qs = Account.objects.filter(tenant=self.get_tenant()).order_by("code")

        active = request.query_params.get("is_active")
        if active in ("true", "false"):
            qs = qs.filter(is_active=active == "true")

        return Response(AccountListSerializer(qs, many=True).data, status=status.HTTP_200_OK)


class AccountActivationView(TenantScopedMixin, GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer
    is_active = True

    @extend_schema(tags=["accounting"], request=None, responses={200: AccountListSerializer})
    def post(self, request, code: str, *args, **kwargs):
        if not request.user.has_perm(ACCOUNT_CHANGE_PERMISSION):
            return Response(
                {"detail": "You do not have permission to change accounts."},
                status=status.HTTP_403_FORBIDDEN,
            )

        try:
            account = account_directory.set_active(
                tenant=self.get_tenant(), code=code, is_active=self.is_active
            )
        except AccountNotFoundError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response(AccountListSerializer(account).data, status=status.HTTP_200_OK)
