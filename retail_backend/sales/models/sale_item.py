# sales/models/sale_item.py

"""
======================================================
PATH: sales/models/sale_item.py
======================================================
SALE ITEM (LINE SNAPSHOT)

Each row freezes price, cost and tax rate at the moment of sale so later
catalog changes never rewrite history.

Line math:
- subtotal   = quantity * unit_price
- tax_amount = (subtotal - discount_amount) * tax_rate / 100
- total      = subtotal - discount_amount + tax_amount
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from products.models import Product
from sales.models.sale import Sale

ZERO = Decimal("0.00")


class SaleItem(models.Model):
    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="sale_items",
    )
    variant = models.CharField(max_length=64, blank=True, default="")

    product_name = models.CharField(max_length=200, blank=True, default="")
    quantity = models.PositiveIntegerField()

    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    unit_cost = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)

    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_sale_item_quantity_positive",
            ),
            models.CheckConstraint(
                condition=Q(unit_price__gte=0) & Q(unit_cost__gte=0) & Q(discount_amount__gte=0),
                name="chk_sale_item_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(discount_amount__lte=F("subtotal")),
                name="chk_sale_item_discount_within_subtotal",
            ),
        ]

    def __str__(self):
        return f"{self.product_name or self.product_id} x {self.quantity}"

    @property
    def cost_amount(self) -> Decimal:
        return (self.unit_cost or ZERO) * self.quantity

    def clean(self):
        if self.product_id and self.sale_id and self.product.tenant_id != self.sale.tenant_id:
            raise ValidationError("Product belongs to another tenant")

        if self.subtotal != (self.unit_price or ZERO) * (self.quantity or 0):
            raise ValidationError("subtotal must equal quantity * unit_price")

        if self.total != self.subtotal - self.discount_amount + self.tax_amount:
            raise ValidationError("total must equal subtotal - discount + tax")

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            raise ValidationError("Sale items are immutable once written")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Sale items cannot be deleted")
