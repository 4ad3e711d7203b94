from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

PAYMENT_METHOD_CHOICES = [
    ("CASH", "Cash"),
    ("CARD", "Card"),
    ("TRANSFER", "Bank transfer"),
    ("NEQUI", "Nequi"),
    ("DAVIPLATA", "Daviplata"),
    ("BANK", "Bank"),
    ("OTHER", "Other"),
]


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=14, **kwargs)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        ("accounting", "0001_initial"),
        ("products", "0001_initial"),
        ("credits", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sale_number", models.CharField(max_length=32)),
                (
                    "sale_type",
                    models.CharField(
                        choices=[("REGULAR", "Regular"), ("CREDIT", "Credit")],
                        default="REGULAR",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("COMPLETED", "Completed"),
                            ("CANCELLED", "Cancelled"),
                            ("REFUNDED", "Refunded"),
                        ],
                        default="PENDING",
                        max_length=12,
                    ),
                ),
                ("subtotal", _money(default=Decimal("0.00"))),
                ("discount_amount", _money(default=Decimal("0.00"))),
                ("tax_amount", _money(default=Decimal("0.00"))),
                ("total_amount", _money(default=Decimal("0.00"))),
                ("paid_amount", _money(default=Decimal("0.00"))),
                ("credit_amount", _money(default=Decimal("0.00"))),
                ("change_amount", _money(default=Decimal("0.00"))),
                ("cost_amount", _money(default=Decimal("0.00"))),
                ("settlement_warnings", models.JSONField(blank=True, default=list)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True, default="")),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="tenants.tenant",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="credits.customer",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "journal_entry",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="accounting.journalentry",
                    ),
                ),
                (
                    "cancelled_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales_cancelled",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["tenant", "status", "created_at"], name="sale_tenant_status_idx"),
                    models.Index(fields=["tenant", "customer"], name="sale_tenant_customer_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "sale_number"), name="uniq_sale_tenant_number"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("subtotal__gte", 0),
                            ("discount_amount__gte", 0),
                            ("tax_amount__gte", 0),
                            ("total_amount__gte", 0),
                        ),
                        name="chk_sale_amounts_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("paid_amount__gte", 0),
                            ("credit_amount__gte", 0),
                            ("change_amount__gte", 0),
                        ),
                        name="chk_sale_settlement_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("discount_amount__lte", models.F("subtotal"))),
                        name="chk_sale_discount_within_subtotal",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("variant", models.CharField(blank=True, default="", max_length=64)),
                ("product_name", models.CharField(blank=True, default="", max_length=200)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", _money()),
                ("unit_cost", _money(default=Decimal("0.00"))),
                ("discount_amount", _money(default=Decimal("0.00"))),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("tax_amount", _money(default=Decimal("0.00"))),
                ("subtotal", _money()),
                ("total", _money()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="sales.sale",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_items",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gt", 0)),
                        name="chk_sale_item_quantity_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("unit_price__gte", 0),
                            ("unit_cost__gte", 0),
                            ("discount_amount__gte", 0),
                        ),
                        name="chk_sale_item_amounts_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("discount_amount__lte", models.F("subtotal"))),
                        name="chk_sale_item_discount_within_subtotal",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SalePayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("method", models.CharField(choices=PAYMENT_METHOD_CHOICES, max_length=20)),
                ("amount", _money()),
                ("change_given", _money(default=Decimal("0.00"))),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[("COMPLETED", "Completed"), ("CANCELLED", "Cancelled")],
                        default="COMPLETED",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="sales.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="chk_sale_payment_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("change_given__gte", 0), ("change_given__lte", models.F("amount"))),
                        name="chk_sale_payment_change_within_amount",
                    ),
                ],
            },
        ),
    ]
