# products/models/product.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from tenants.models import Tenant


def _default_tax_rate() -> Decimal:
    return Decimal(str(getattr(settings, "DEFAULT_TAX_RATE", "19.00") or "0"))


class Product(models.Model):
    """
    A sellable item of a tenant's catalog.

    Rules:
    - sku is unique per tenant (normalized to uppercase)
    - prices are non-negative; tax_rate is a percentage (19.00 == 19%)
    - Stock does NOT live here: see StockRecord / StockMovement
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="products",
    )

    sku = models.CharField(max_length=64)
    name = models.CharField(max_length=255)

    sale_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    cost_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=_default_tax_rate,
        validators=[
            MinValueValidator(Decimal("0.00")),
            MaxValueValidator(Decimal("100.00")),
        ],
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "sku"],
                name="uniq_product_tenant_sku",
            ),
            models.CheckConstraint(
                condition=Q(sale_price__gte=0) & Q(cost_price__gte=0),
                name="chk_product_prices_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "is_active"], name="prod_tenant_active_idx"),
        ]

    def __str__(self):
        return f"{self.sku} - {self.name}"

    def clean(self):
        self.sku = (self.sku or "").strip().upper()
        self.name = (self.name or "").strip()

        if not self.sku:
            raise ValidationError({"sku": "SKU is required"})
        if not self.name:
            raise ValidationError({"name": "Product name is required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
