from __future__ import annotations

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import products.models.product


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=255)),
                (
                    "sale_price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "cost_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "tax_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=products.models.product._default_tax_rate,
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0.00")),
                            django.core.validators.MaxValueValidator(Decimal("100.00")),
                        ],
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="products",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["tenant", "is_active"], name="prod_tenant_active_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "sku"), name="uniq_product_tenant_sku"),
                    models.CheckConstraint(
                        condition=models.Q(("sale_price__gte", 0), ("cost_price__gte", 0)),
                        name="chk_product_prices_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("variant", models.CharField(blank=True, default="", max_length=64)),
                ("quantity", models.IntegerField(default=0)),
                ("min_stock_level", models.PositiveIntegerField(default=0)),
                ("last_movement_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_records",
                        to="products.product",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_records",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "ordering": ["product_id", "variant"],
                "indexes": [
                    models.Index(fields=["tenant", "product"], name="stock_tenant_product_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "variant"), name="uniq_stock_record_product_variant"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 0)),
                        name="chk_stock_record_quantity_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("movement_type", models.CharField(choices=[("IN", "Stock In"), ("OUT", "Stock Out")], max_length=3)),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("INITIAL", "Initial Stock"),
                            ("PURCHASE", "Purchase"),
                            ("SALE", "Sale"),
                            ("SALE_CANCELLATION", "Sale Cancellation"),
                            ("RETURN_CUSTOMER", "Customer Return"),
                            ("ADJUSTMENT", "Manual Adjustment"),
                            ("DAMAGE", "Damaged Stock"),
                            ("EXPIRY", "Expired Stock"),
                        ],
                        max_length=20,
                    ),
                ),
                ("quantity", models.PositiveIntegerField()),
                ("quantity_before", models.IntegerField()),
                ("quantity_after", models.IntegerField()),
                (
                    "unit_cost_snapshot",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        default=None,
                        help_text="Product cost at movement time (immutable).",
                        max_digits=14,
                        null=True,
                    ),
                ),
                ("reference_type", models.CharField(blank=True, default="", max_length=50)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                ("note", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "record",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="products.stockrecord",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["record", "created_at"], name="stockmv_record_created_idx"),
                    models.Index(fields=["reason"], name="stockmv_reason_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="stockmv_reference_idx"),
                ],
            },
        ),
    ]
