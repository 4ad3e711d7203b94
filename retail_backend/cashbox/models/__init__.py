"""
PATH: cashbox/models/__init__.py

Cashbox models export surface.
"""

from .movement import CashMovement
from .register import CashRegister

__all__ = [
    "CashMovement",
    "CashRegister",
]
