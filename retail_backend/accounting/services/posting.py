# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
POSTING ADAPTER

Map business events -> LineRequest lists and call post_entry (the engine).

This module should remain a thin adapter:
- It DOES NOT do workflows (orchestrators do).
- It DOES decide which accounts an event touches (via the Account Directory codes).
- It ALWAYS calls post_entry for numbering, balance checks and idempotency.

Events:
- Sale (cash/bank/receivable debits; income + VAT credits; COGS vs inventory)
- Purchase of inventory (inventory + deductible VAT vs payment/supplier, optional withholding)
- Credit payment received (cash/bank + withholding certificate vs receivables)
- Cash register closing discrepancy (surplus -> misc income, shortage -> misc expense)

Expenses are posted by expense_service (they own their model).
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from accounting.models.choices import (
    EntryType,
    ExpensePaymentMethod,
    Movement,
    PaymentMethod,
)
from accounting.services.account_directory import (
    LedgerAccount,
    account_for_expense_payment,
    account_for_payment_method,
)
from accounting.services.exceptions import LedgerValidationError
from accounting.services.journal_entry_service import (
    EntryRequest,
    LineRequest,
    post_entry,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


class LineBuilder:
    """
    Collects lines, merging repeated (account, movement) pairs and
    dropping zero amounts. Order of first appearance is preserved.
    """

    def __init__(self):
        self._amounts: dict[tuple[str, str], Decimal] = {}
        self._descriptions: dict[tuple[str, str], str] = {}

    def add(self, account: LedgerAccount | str, movement: str, amount, description: str = "") -> None:
        amount = _money(amount)
        if amount <= 0:
            return
        key = (str(account), str(movement))
        self._amounts[key] = self._amounts.get(key, ZERO) + amount
        self._descriptions.setdefault(key, description)

    def debit(self, account, amount, description: str = "") -> None:
        self.add(account, Movement.DEBIT, amount, description)

    def credit(self, account, amount, description: str = "") -> None:
        self.add(account, Movement.CREDIT, amount, description)

    def build(self) -> list[LineRequest]:
        return [
            LineRequest(
                account_code=code,
                movement=movement,
                amount=amount,
                description=self._descriptions[(code, movement)],
            )
            for (code, movement), amount in self._amounts.items()
        ]


# ============================================================
# SALES
# ============================================================


def build_sale_lines(sale) -> list[LineRequest]:
    """
    Debit:  payment account per method (net of change), receivables for the credit part
    Credit: sales income (subtotal - discount), VAT payable (tax)
    Cost:   COGS debit / inventory credit when cost data exists
    """
    number = sale.sale_number
    lines = LineBuilder()

    for payment in sale.payments.filter(status="COMPLETED").order_by("id"):
        net = _money(payment.amount) - _money(payment.change_given)
        lines.debit(
            account_for_payment_method(payment.method),
            net,
            f"{PaymentMethod(payment.method).label} - {number}",
        )

    lines.debit(LedgerAccount.ACCOUNTS_RECEIVABLE, sale.credit_amount, f"Crédito cliente - {number}")

    lines.credit(
        LedgerAccount.SALES_INCOME,
        _money(sale.subtotal) - _money(sale.discount_amount),
        f"Ingreso por venta {number}",
    )
    lines.credit(LedgerAccount.VAT_PAYABLE, sale.tax_amount, f"IVA generado {number}")

    cost = _money(getattr(sale, "cost_amount", None))
    if cost > 0:
        lines.debit(LedgerAccount.COST_OF_SALES, cost, f"Costo de venta {number}")
        lines.credit(LedgerAccount.INVENTORY, cost, f"Salida de inventario - venta {number}")

    return lines.build()


def post_sale_to_ledger(*, sale, created_by=None):
    entry_type = EntryType.SALE_CREDIT if _money(sale.credit_amount) > 0 else EntryType.SALE

    return post_entry(
        EntryRequest(
            tenant=sale.tenant,
            entry_type=entry_type,
            entry_date=sale.completed_at or sale.created_at,
            description=f"Venta {sale.sale_number}",
            lines=build_sale_lines(sale),
            reference_type="Sale",
            reference_id=str(sale.pk),
            reference_number=sale.sale_number,
            created_by=created_by or sale.user,
        )
    )


# ============================================================
# PURCHASES
# ============================================================


def post_purchase_to_ledger(
    *,
    tenant,
    purchase_id,
    purchase_number: str,
    subtotal,
    tax_amount=ZERO,
    payment_method: str = ExpensePaymentMethod.CREDIT,
    purchase_date: date | None = None,
    withholding_amount=ZERO,
    created_by=None,
):
    """
    Debit:  inventory (subtotal) + deductible VAT (tax)
    Credit: withholding payable (tax withheld from the supplier), and
            suppliers when bought on credit, else the cash/bank account (total - withheld)
    """
    subtotal = _money(subtotal)
    tax_amount = _money(tax_amount)
    withholding = _money(withholding_amount)

    if withholding < 0 or withholding > subtotal:
        raise LedgerValidationError(
            f"Withholding {withholding} must be between zero and the purchase subtotal {subtotal}"
        )

    if payment_method == ExpensePaymentMethod.CREDIT:
        payment_account = LedgerAccount.ACCOUNTS_PAYABLE
    else:
        payment_account = account_for_expense_payment(payment_method)

    lines = LineBuilder()
    lines.debit(LedgerAccount.INVENTORY, subtotal, f"Compra de inventario {purchase_number}")
    lines.debit(LedgerAccount.VAT_PAYABLE, tax_amount, f"IVA descontable en compra {purchase_number}")
    lines.credit(LedgerAccount.WITHHOLDING_PAYABLE, withholding, f"Retención practicada {purchase_number}")
    lines.credit(payment_account, subtotal + tax_amount - withholding, f"Pago compra {purchase_number}")

    return post_entry(
        EntryRequest(
            tenant=tenant,
            entry_type=EntryType.PURCHASE,
            entry_date=purchase_date,
            description=f"Compra {purchase_number}",
            lines=lines.build(),
            reference_type="Purchase",
            reference_id=str(purchase_id),
            reference_number=purchase_number,
            created_by=created_by,
        )
    )


# ============================================================
# CREDIT PAYMENTS
# ============================================================


def post_credit_payment_to_ledger(*, payment, created_by=None):
    """
    Debit cash/bank (applied - withheld) and withholding receivable (withheld),
    credit receivables for the amount actually applied to credits.
    Excess is not recognized here (it was reported back to the caller).
    Returns None when nothing was applied.
    """
    applied = _money(payment.applied_amount)
    if applied <= 0:
        logger.info("Credit payment %s applied nothing; no ledger entry", payment.pk)
        return None

    withholding = _money(getattr(payment, "withholding_amount", None))
    customer = payment.customer
    lines = LineBuilder()
    lines.debit(
        account_for_payment_method(payment.payment_method),
        applied - withholding,
        f"Abono de {customer.name}",
    )
    lines.debit(LedgerAccount.WITHHOLDING_RECEIVABLE, withholding, f"Retención a favor - {customer.name}")
    lines.credit(LedgerAccount.ACCOUNTS_RECEIVABLE, applied, f"Abono a cartera {customer.name}")

    return post_entry(
        EntryRequest(
            tenant=customer.tenant,
            entry_type=EntryType.PAYMENT_RECEIVED,
            entry_date=payment.created_at,
            description=f"Abono a crédito - {customer.name}",
            lines=lines.build(),
            reference_type="CreditPayment",
            reference_id=str(payment.pk),
            created_by=created_by,
        )
    )


# ============================================================
# CASH REGISTER
# ============================================================


def post_register_discrepancy_to_ledger(*, register, created_by=None):
    """
    Surplus:  debit cash, credit miscellaneous income
    Shortage: debit miscellaneous expense, credit cash
    Returns None when the count matches.
    """
    difference = _money(register.difference)
    if difference == 0:
        return None

    label = f"Cierre de caja {register.session_number}"
    lines = LineBuilder()
    if difference > 0:
        lines.debit(LedgerAccount.CASH, difference, f"Sobrante - {label}")
        lines.credit(LedgerAccount.MISC_INCOME, difference, f"Sobrante - {label}")
    else:
        lines.debit(LedgerAccount.MISC_EXPENSE, -difference, f"Faltante - {label}")
        lines.credit(LedgerAccount.CASH, -difference, f"Faltante - {label}")

    return post_entry(
        EntryRequest(
            tenant=register.tenant,
            entry_type=EntryType.CASH_REGISTER_CLOSE,
            entry_date=register.closed_at,
            description=label,
            lines=lines.build(),
            reference_type="CashRegister",
            reference_id=str(register.pk),
            reference_number=register.session_number,
            created_by=created_by,
        )
    )
