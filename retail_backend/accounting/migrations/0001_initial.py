from __future__ import annotations

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=10)),
                ("name", models.CharField(max_length=150)),
                ("nature", models.CharField(choices=[("DEBIT", "Debit"), ("CREDIT", "Credit")], max_length=6)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("ASSET", "Asset"),
                            ("LIABILITY", "Liability"),
                            ("EQUITY", "Equity"),
                            ("INCOME", "Income"),
                            ("EXPENSE", "Expense"),
                            ("COST", "Cost"),
                        ],
                        max_length=20,
                    ),
                ),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="accounts",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["tenant", "code"], name="acct_tenant_code_idx"),
                    models.Index(fields=["tenant", "account_type"], name="acct_tenant_type_idx"),
                    models.Index(fields=["is_active"], name="acct_is_active_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "code"), name="uniq_account_tenant_code"),
                    models.CheckConstraint(condition=models.Q(("code", ""), _negated=True), name="chk_account_code_not_blank"),
                    models.CheckConstraint(condition=models.Q(("name", ""), _negated=True), name="chk_account_name_not_blank"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("entry_number", models.CharField(max_length=30)),
                ("entry_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "entry_type",
                    models.CharField(
                        choices=[
                            ("SALE", "Sale"),
                            ("SALE_CREDIT", "Credit sale"),
                            ("SALE_REFUND", "Sale refund"),
                            ("PURCHASE", "Purchase"),
                            ("EXPENSE", "Expense"),
                            ("PAYMENT_RECEIVED", "Payment received"),
                            ("PAYMENT_MADE", "Payment made"),
                            ("CASH_REGISTER_OPEN", "Cash register opening"),
                            ("CASH_REGISTER_CLOSE", "Cash register closing"),
                            ("CASH_DEPOSIT", "Cash deposit"),
                            ("CASH_WITHDRAWAL", "Cash withdrawal"),
                            ("ADJUSTMENT", "Adjustment"),
                            ("OPENING_BALANCE", "Opening balance"),
                            ("CLOSING", "Closing"),
                            ("OTHER", "Other"),
                        ],
                        max_length=30,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("CONFIRMED", "Confirmed"), ("CANCELLED", "Cancelled")],
                        default="CONFIRMED",
                        max_length=10,
                    ),
                ),
                ("description", models.TextField(help_text="Narrative description of the journal entry")),
                ("total_debits", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total_credits", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("reference_type", models.CharField(blank=True, default="", max_length=50)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                ("reference_number", models.CharField(blank=True, default="", max_length=50)),
                ("notes", models.TextField(blank=True, default="")),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="journal_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reversal_entry",
                    models.ForeignKey(
                        blank=True,
                        help_text="Entry that reversed this one (set when CANCELLED)",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="accounting.journalentry",
                    ),
                ),
                (
                    "reversal_of",
                    models.OneToOneField(
                        blank=True,
                        help_text="Original entry this one reverses",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reversed_by",
                        to="accounting.journalentry",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_entries",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Entry",
                "verbose_name_plural": "Journal Entries",
                "ordering": ["-entry_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["tenant", "entry_date"], name="je_tenant_date_idx"),
                    models.Index(fields=["tenant", "entry_type"], name="je_tenant_type_idx"),
                    models.Index(fields=["tenant", "status"], name="je_tenant_status_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="je_reference_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "entry_number"), name="uniq_journal_entry_number"),
                    models.UniqueConstraint(
                        condition=models.Q(models.Q(("reference_id", ""), _negated=True), models.Q(("status", "CANCELLED"), _negated=True)),
                        fields=("tenant", "reference_type", "reference_id"),
                        name="uniq_journal_active_reference",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_debits__gte", 0), ("total_credits__gte", 0)),
                        name="chk_journal_totals_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntryLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("movement", models.CharField(choices=[("DEBIT", "Debit"), ("CREDIT", "Credit")], max_length=6)),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Positive monetary value",
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("line_order", models.PositiveIntegerField(default=1)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_lines",
                        to="accounting.account",
                    ),
                ),
                (
                    "entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Entry Line",
                "verbose_name_plural": "Journal Entry Lines",
                "ordering": ["entry", "line_order"],
                "indexes": [
                    models.Index(fields=["account"], name="jel_account_idx"),
                    models.Index(fields=["entry", "line_order"], name="jel_entry_order_idx"),
                    models.Index(fields=["account", "movement"], name="jel_account_movement_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="chk_journal_line_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("INVENTORY_PURCHASE", "Inventory purchase"),
                            ("PAYROLL", "Payroll"),
                            ("PROFESSIONAL_SERVICES", "Professional services"),
                            ("TAXES_FEES", "Taxes and fees"),
                            ("RENT", "Rent"),
                            ("INSURANCE", "Insurance"),
                            ("UTILITIES", "Utilities"),
                            ("INTERNET_PHONE", "Internet and phone"),
                            ("LEGAL", "Legal expenses"),
                            ("MAINTENANCE", "Maintenance and repairs"),
                            ("INSTALLATION", "Fit-out and installation"),
                            ("TRAVEL", "Travel"),
                            ("DEPRECIATION", "Depreciation"),
                            ("OFFICE_SUPPLIES", "Office supplies"),
                            ("SALES_STAFF", "Sales staff"),
                            ("SALES_COMMISSIONS", "Sales commissions"),
                            ("ADVERTISING", "Advertising"),
                            ("FREIGHT", "Transport and freight"),
                            ("BANK_FEES", "Bank fees"),
                            ("INTEREST", "Interest"),
                            ("OTHER", "Other"),
                        ],
                        max_length=30,
                    ),
                ),
                ("expense_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "subtotal",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                (
                    "tax_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("CASH", "Cash"),
                            ("BANK", "Bank"),
                            ("CARD", "Card"),
                            ("TRANSFER", "Bank transfer"),
                            ("CREDIT", "On credit (payable)"),
                        ],
                        default="CASH",
                        max_length=10,
                    ),
                ),
                ("vendor", models.CharField(blank=True, default="", max_length=150)),
                ("narration", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="expenses",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "journal_entry",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="expense",
                        to="accounting.journalentry",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="expenses",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Expense",
                "verbose_name_plural": "Expenses",
                "ordering": ["-expense_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["tenant", "expense_date"], name="exp_tenant_date_idx"),
                    models.Index(fields=["tenant", "category"], name="exp_tenant_category_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total_amount", models.F("subtotal") + models.F("tax_amount"))),
                        name="chk_expense_total_matches",
                    ),
                ],
            },
        ),
    ]
