from .stock_ledger import (
    InsufficientStock,
    InsufficientStockError,
    StockAdjusted,
    StockLedgerError,
    adjust,
    adjust_or_raise,
    available_quantity,
)

__all__ = [
    "InsufficientStock",
    "InsufficientStockError",
    "StockAdjusted",
    "StockLedgerError",
    "adjust",
    "adjust_or_raise",
    "available_quantity",
]
