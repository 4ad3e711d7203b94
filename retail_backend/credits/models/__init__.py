"""
PATH: credits/models/__init__.py

Credits models export surface.
"""

from .credit import CustomerCredit
from .customer import Customer
from .payment import CreditPayment, CreditPaymentAllocation

__all__ = [
    "CreditPayment",
    "CreditPaymentAllocation",
    "Customer",
    "CustomerCredit",
]
