# sales/services/sale_lifecycle.py

"""
SALE LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions
for Sale entities.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth
"""

from sales.models import Sale
from sales.services.exceptions import InvalidSaleTransitionError

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Sale.Status.CANCELLED,
    Sale.Status.REFUNDED,
}

ALLOWED_TRANSITIONS = {
    Sale.Status.PENDING: {
        Sale.Status.COMPLETED,
        Sale.Status.CANCELLED,
    },
    Sale.Status.COMPLETED: {
        Sale.Status.CANCELLED,
        Sale.Status.REFUNDED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, sale: Sale, target_status: str):
    if not can_transition(
        from_status=sale.status,
        to_status=target_status,
    ):
        raise InvalidSaleTransitionError(
            f"Sale {sale.sale_number} cannot transition from "
            f"'{sale.status}' to '{target_status}'"
        )
