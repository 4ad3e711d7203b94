# products/serializers/__init__.py

from .product import ProductSerializer
from .stock import (
    StockAdjustResultSerializer,
    StockAdjustSerializer,
    StockMovementSerializer,
    StockRecordSerializer,
)

__all__ = [
    "ProductSerializer",
    "StockAdjustResultSerializer",
    "StockAdjustSerializer",
    "StockMovementSerializer",
    "StockRecordSerializer",
]
