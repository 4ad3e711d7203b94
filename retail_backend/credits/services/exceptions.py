# credits/services/exceptions.py

"""
CREDIT SUBLEDGER ERRORS

- CreditSubledgerError: base, expected failures (nothing persisted)
- CreditLimitExceededError: carries the CreditLimitCheck that failed
"""

from __future__ import annotations


class CreditSubledgerError(Exception):
    """Base exception for credit subledger failures."""


class CreditLimitExceededError(CreditSubledgerError):
    """Raised when a credit would push the customer over their limit."""

    def __init__(self, check):
        self.check = check
        super().__init__(
            f"Credit limit exceeded for customer {check.customer_id}: "
            f"limit {check.credit_limit}, used {check.credit_used}, "
            f"requested {check.requested}"
        )


class CreditPaymentError(CreditSubledgerError):
    """Raised when a payment cannot be applied."""


class CreditStateError(CreditSubledgerError):
    """Raised when a credit lifecycle transition is not allowed."""
