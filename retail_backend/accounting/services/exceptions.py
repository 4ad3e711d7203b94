# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.

- LedgerValidationError and subclasses: expected, pre-write failures (nothing persisted)
- InvariantViolation: a stored record breaks a ledger invariant (fatal)
"""

from __future__ import annotations


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class LedgerValidationError(AccountingServiceError):
    """Raised when a posting request is rejected before any write."""


class UnbalancedEntryError(LedgerValidationError):
    """Raised when debits and credits differ by more than the tolerance."""

    def __init__(self, check):
        self.check = check
        super().__init__(
            f"Journal entry not balanced: debits={check.total_debits} "
            f"credits={check.total_credits} difference={check.difference}"
        )


class AccountNotFoundError(LedgerValidationError):
    """Raised when a required account code is missing or inactive for the tenant."""

    def __init__(self, code: str, *, tenant=None, inactive: bool = False):
        self.code = code
        self.tenant = tenant
        self.inactive = inactive
        state = "inactive" if inactive else "not provisioned"
        super().__init__(f"Account {code} is {state} for tenant {getattr(tenant, 'slug', tenant)}")


class DuplicateReferenceError(LedgerValidationError):
    """Raised on duplicate or retried accounting events (same reference, still active)."""


class EntryStateError(AccountingServiceError):
    """Raised when an entry lifecycle transition is not allowed."""


class InvariantViolation(AccountingServiceError):
    """Raised when a stored entry is found inconsistent on read."""

    def __init__(self, entry, message: str):
        self.entry = entry
        super().__init__(f"{getattr(entry, 'entry_number', entry)}: {message}")
