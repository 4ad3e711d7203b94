"""
PATH: sales/models/__init__.py

Sales models export surface.
"""

from .sale import Sale
from .sale_item import SaleItem
from .sale_payment import SalePayment

__all__ = [
    "Sale",
    "SaleItem",
    "SalePayment",
]
