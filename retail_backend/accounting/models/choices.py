# accounting/models/choices.py

"""
======================================================
PATH: accounting/models/choices.py
======================================================
SHARED ACCOUNTING ENUMS

Imported by models of several apps (accounting, sales, credits, cashbox),
so this module must stay free of model and service imports.
"""

from django.db import models


class AccountNature(models.TextChoices):
    DEBIT = "DEBIT", "Debit"
    CREDIT = "CREDIT", "Credit"


class AccountType(models.TextChoices):
    ASSET = "ASSET", "Asset"
    LIABILITY = "LIABILITY", "Liability"
    EQUITY = "EQUITY", "Equity"
    INCOME = "INCOME", "Income"
    EXPENSE = "EXPENSE", "Expense"
    COST = "COST", "Cost"


class Movement(models.TextChoices):
    DEBIT = "DEBIT", "Debit"
    CREDIT = "CREDIT", "Credit"

    @property
    def opposite(self) -> "Movement":
        return Movement.CREDIT if self == Movement.DEBIT else Movement.DEBIT


class EntryType(models.TextChoices):
    SALE = "SALE", "Sale"
    SALE_CREDIT = "SALE_CREDIT", "Credit sale"
    SALE_REFUND = "SALE_REFUND", "Sale refund"
    PURCHASE = "PURCHASE", "Purchase"
    EXPENSE = "EXPENSE", "Expense"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED", "Payment received"
    PAYMENT_MADE = "PAYMENT_MADE", "Payment made"
    CASH_REGISTER_OPEN = "CASH_REGISTER_OPEN", "Cash register opening"
    CASH_REGISTER_CLOSE = "CASH_REGISTER_CLOSE", "Cash register closing"
    CASH_DEPOSIT = "CASH_DEPOSIT", "Cash deposit"
    CASH_WITHDRAWAL = "CASH_WITHDRAWAL", "Cash withdrawal"
    ADJUSTMENT = "ADJUSTMENT", "Adjustment"
    OPENING_BALANCE = "OPENING_BALANCE", "Opening balance"
    CLOSING = "CLOSING", "Closing"
    OTHER = "OTHER", "Other"


class EntryStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    CONFIRMED = "CONFIRMED", "Confirmed"
    CANCELLED = "CANCELLED", "Cancelled"


class PaymentMethod(models.TextChoices):
    """How a customer pays at the point of sale."""

    CASH = "CASH", "Cash"
    CARD = "CARD", "Card"
    TRANSFER = "TRANSFER", "Bank transfer"
    NEQUI = "NEQUI", "Nequi"
    DAVIPLATA = "DAVIPLATA", "Daviplata"
    BANK = "BANK", "Bank"
    OTHER = "OTHER", "Other"


class ExpensePaymentMethod(models.TextChoices):
    """How the business pays an expense (CREDIT = owed to the supplier)."""

    CASH = "CASH", "Cash"
    BANK = "BANK", "Bank"
    CARD = "CARD", "Card"
    TRANSFER = "TRANSFER", "Bank transfer"
    CREDIT = "CREDIT", "On credit (payable)"


class ExpenseCategory(models.TextChoices):
    INVENTORY_PURCHASE = "INVENTORY_PURCHASE", "Inventory purchase"
    PAYROLL = "PAYROLL", "Payroll"
    PROFESSIONAL_SERVICES = "PROFESSIONAL_SERVICES", "Professional services"
    TAXES_FEES = "TAXES_FEES", "Taxes and fees"
    RENT = "RENT", "Rent"
    INSURANCE = "INSURANCE", "Insurance"
    UTILITIES = "UTILITIES", "Utilities"
    INTERNET_PHONE = "INTERNET_PHONE", "Internet and phone"
    LEGAL = "LEGAL", "Legal expenses"
    MAINTENANCE = "MAINTENANCE", "Maintenance and repairs"
    INSTALLATION = "INSTALLATION", "Fit-out and installation"
    TRAVEL = "TRAVEL", "Travel"
    DEPRECIATION = "DEPRECIATION", "Depreciation"
    OFFICE_SUPPLIES = "OFFICE_SUPPLIES", "Office supplies"
    SALES_STAFF = "SALES_STAFF", "Sales staff"
    SALES_COMMISSIONS = "SALES_COMMISSIONS", "Sales commissions"
    ADVERTISING = "ADVERTISING", "Advertising"
    FREIGHT = "FREIGHT", "Transport and freight"
    BANK_FEES = "BANK_FEES", "Bank fees"
    INTEREST = "INTEREST", "Interest"
    OTHER = "OTHER", "Other"
