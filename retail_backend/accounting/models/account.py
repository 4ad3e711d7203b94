# accounting/models/account.py

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.choices import AccountNature, AccountType
from tenants.models import Tenant


class Account(models.Model):
    """
    Represents a single account within a tenant's chart of accounts.

    Guarantees:
    - Account codes are unique per tenant
    - Code + name are normalized (trimmed)
    - nature decides which side increases the balance
    - Never deleted (historical lines reference it); deactivate instead
    """

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="accounts",
    )

    code = models.CharField(max_length=10)
    name = models.CharField(max_length=150)

    nature = models.CharField(max_length=6, choices=AccountNature.choices)
    account_type = models.CharField(max_length=20, choices=AccountType.choices)

    description = models.CharField(max_length=255, blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["tenant", "code"], name="acct_tenant_code_idx"),
            models.Index(fields=["tenant", "account_type"], name="acct_tenant_type_idx"),
            models.Index(fields=["is_active"], name="acct_is_active_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "code"],
                name="uniq_account_tenant_code",
            ),
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def increases_with_debit(self) -> bool:
        return self.nature == AccountNature.DEBIT

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")

        if self.pk:
            previous = (
                Account.objects.filter(pk=self.pk)
                .values("code", "nature", "account_type", "tenant_id")
                .first()
            )
            if previous and (
                previous["code"] != self.code
                or previous["nature"] != self.nature
                or previous["account_type"] != self.account_type
                or previous["tenant_id"] != self.tenant_id
            ):
                raise ValidationError(
                    "Account code, nature and type are fixed; only activation may change"
                )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Accounts cannot be deleted; deactivate them instead")
