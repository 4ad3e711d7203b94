# tenants/models/tenant.py

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


def _default_credit_term_days() -> int:
    return int(getattr(settings, "DEFAULT_CREDIT_TERM_DAYS", 30) or 30)


class Tenant(models.Model):
    """
    A retail business using the system.

    Guarantees:
    - slug is unique + normalized (lowercase, trimmed)
    - every ledger, stock and credit row is scoped to exactly one tenant
    """

    name = models.CharField(max_length=150)
    slug = models.SlugField(max_length=64, unique=True)

    default_credit_term_days = models.PositiveIntegerField(
        default=_default_credit_term_days,
        validators=[MinValueValidator(0)],
        help_text="Days until a customer credit falls due when the customer has no own terms.",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(slug=""),
                name="chk_tenant_slug_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.slug})"

    def clean(self):
        self.name = (self.name or "").strip()
        self.slug = (self.slug or "").strip().lower()

        if not self.name:
            raise ValidationError("Tenant name is required")
        if not self.slug:
            raise ValidationError("Tenant slug is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class TenantMembership(models.Model):
    """
    Grants a user access to a tenant's data through the API.
    """

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tenant_memberships",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "user"],
                name="uniq_tenant_membership",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} @ {self.tenant_id}"
