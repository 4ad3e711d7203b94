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


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        ("accounting", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CashRegister",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(default="Caja principal", max_length=100)),
                ("session_number", models.CharField(max_length=32)),
                (
                    "status",
                    models.CharField(
                        choices=[("OPEN", "Open"), ("CLOSED", "Closed")], default="OPEN", max_length=10
                    ),
                ),
                ("opening_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("expected_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("counted_balance", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("difference", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("total_sales", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total_refunds", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total_transactions", models.PositiveIntegerField(default=0)),
                ("opened_at", models.DateTimeField(auto_now_add=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "closed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="cash_registers_closed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "closing_entry",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="closed_cash_register",
                        to="accounting.journalentry",
                    ),
                ),
                (
                    "opened_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="cash_registers_opened",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="cash_registers",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "ordering": ["-opened_at"],
                "indexes": [models.Index(fields=["tenant", "status"], name="reg_tenant_status_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "OPEN")),
                        fields=("tenant",),
                        name="uniq_open_register_per_tenant",
                    ),
                    models.UniqueConstraint(
                        fields=("tenant", "session_number"),
                        name="uniq_register_session_number",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("opening_balance__gte", 0)),
                        name="chk_register_opening_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CashMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "movement_type",
                    models.CharField(
                        choices=[
                            ("OPENING", "Opening"),
                            ("SALE", "Sale"),
                            ("REFUND", "Refund"),
                            ("EXPENSE", "Expense"),
                            ("DEPOSIT", "Deposit"),
                            ("WITHDRAWAL", "Withdrawal"),
                            ("ADJUSTMENT", "Adjustment"),
                            ("CLOSING", "Closing"),
                        ],
                        max_length=12,
                    ),
                ),
                ("direction", models.CharField(choices=[("IN", "Cash In"), ("OUT", "Cash Out")], max_length=3)),
                ("payment_method", models.CharField(choices=PAYMENT_METHOD_CHOICES, default="CASH", max_length=20)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("balance_before", models.DecimalField(decimal_places=2, max_digits=14)),
                ("balance_after", models.DecimalField(decimal_places=2, max_digits=14)),
                ("reference_type", models.CharField(blank=True, default="", max_length=50)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                ("reference_number", models.CharField(blank=True, default="", max_length=50)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="cash_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "register",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="cashbox.cashregister",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["register", "created_at"], name="cashmv_register_created_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="cashmv_reference_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gte", 0)),
                        name="chk_cash_movement_amount_non_negative",
                    ),
                ],
            },
        ),
    ]
