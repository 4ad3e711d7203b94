"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product
from .stock_movement import StockMovement
from .stock_record import StockRecord

__all__ = [
    "Product",
    "StockMovement",
    "StockRecord",
]
