# credits/models/customer.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q, Sum

from tenants.models import Tenant


class Customer(models.Model):
    """
    A tenant's customer that may buy on credit.

    Rules:
    - credit_limit == 0 means "no credit"
    - credit_term_days NULL means "use the tenant default"
    - credit_used is derived from open credits, never stored
    """

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="customers",
    )

    name = models.CharField(max_length=255)
    document_number = models.CharField(max_length=32, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    credit_limit = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    credit_term_days = models.PositiveIntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "document_number"],
                condition=~Q(document_number=""),
                name="uniq_customer_tenant_document",
            ),
            models.CheckConstraint(
                condition=Q(credit_limit__gte=0),
                name="chk_customer_credit_limit_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "name"], name="cust_tenant_name_idx"),
        ]

    def __str__(self):
        return self.name

    @property
    def effective_term_days(self) -> int:
        if self.credit_term_days is not None:
            return int(self.credit_term_days)
        return int(self.tenant.default_credit_term_days)

    @property
    def credit_used(self) -> Decimal:
        from credits.models.credit import CustomerCredit

        total = self.credits.filter(
            status__in=CustomerCredit.OPEN_STATUSES
        ).aggregate(total=Sum("balance"))["total"]
        return total or Decimal("0.00")

    @property
    def available_credit(self) -> Decimal:
        return max(Decimal("0.00"), self.credit_limit - self.credit_used)

    def clean(self):
        self.name = (self.name or "").strip()
        self.document_number = (self.document_number or "").strip()

        if not self.name:
            raise ValidationError({"name": "Customer name is required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
