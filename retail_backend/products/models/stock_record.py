# products/models/stock_record.py

"""
STOCK RECORD

One row per (product, variant). A blank variant is the base product.

GUARANTEES:
- quantity never goes below zero (DB check constraint)
- quantity is changed ONLY by products.services.stock_ledger, under a row lock,
  and every change is mirrored by a StockMovement
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from tenants.models import Tenant

from .product import Product


class StockRecord(models.Model):
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="stock_records",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="stock_records",
    )
    variant = models.CharField(max_length=64, blank=True, default="")

    quantity = models.IntegerField(default=0)
    min_stock_level = models.PositiveIntegerField(default=0)
    last_movement_at = models.DateTimeField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["product_id", "variant"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "variant"],
                name="uniq_stock_record_product_variant",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name="chk_stock_record_quantity_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "product"], name="stock_tenant_product_idx"),
        ]

    def __str__(self):
        label = f"{self.product_id}/{self.variant}" if self.variant else str(self.product_id)
        return f"{label}: {self.quantity}"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock_level

    def clean(self):
        self.variant = (self.variant or "").strip()

        if self.quantity is not None and self.quantity < 0:
            raise ValidationError({"quantity": "Stock quantity cannot be negative"})

        if self.product_id and self.tenant_id and self.product.tenant_id != self.tenant_id:
            raise ValidationError("Stock record tenant must match the product tenant")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Stock records cannot be deleted")
