# sales/services/exceptions.py

"""
SETTLEMENT ERRORS

- SettlementError: base
- SettlementValidationError: expected rejection, nothing persisted
    - PaymentValidationError
    - InsufficientStockError (carries the stock shortfall)
    - InvalidSaleTransitionError
- PostCommitFailure: value recorded on Sale.settlement_warnings
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


class SettlementError(Exception):
    """Base exception for sale settlement."""


class SettlementValidationError(SettlementError):
    """The sale request was rejected before anything was written."""


class PaymentValidationError(SettlementValidationError):
    pass


class InsufficientStockError(SettlementValidationError):
    def __init__(self, shortage):
        self.shortage = shortage
        super().__init__(shortage.message)


class InvalidSaleTransitionError(SettlementValidationError):
    pass


@dataclass(frozen=True)
class PostCommitFailure:
    step: str
    error: str
    error_type: str
    occurred_at: str

    def as_dict(self) -> dict:
        return asdict(self)
