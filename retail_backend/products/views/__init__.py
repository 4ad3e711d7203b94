# products/views/__init__.py

"""
Products views package exports.

Purpose:
- Central export point for router imports (ProductViewSet, StockAdjustView).
"""

from .product import ProductViewSet
from .stock import StockAdjustView

__all__ = [
    "ProductViewSet",
    "StockAdjustView",
]
