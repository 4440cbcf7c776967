"""Status Configuration and Transition Rules

This module defines valid status values for orders, order items, production
tasks and inventory receipts, and the allowed order status transitions.
"""
from enum import Enum
from typing import Dict, List, Set


# =============================================================================
# Order Status
# =============================================================================

class OrderStatus(str, Enum):
    """Valid status values for Orders"""
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    IN_PICKING = "IN_PICKING"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


# Allowed transitions: current_status -> set of allowed next statuses
ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    OrderStatus.DRAFT: {
        OrderStatus.OPEN,
        OrderStatus.CANCELLED,
    },
    OrderStatus.OPEN: {
        OrderStatus.IN_PICKING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.IN_PICKING: {
        OrderStatus.DONE,
        OrderStatus.CANCELLED,
    },
    OrderStatus.DONE: set(),  # Terminal state
    OrderStatus.CANCELLED: set(),  # Terminal state (trash/untrash handles restore)
}

# Orders in these states do not compete for stock
INACTIVE_DEMAND_STATUSES: List[str] = [
    OrderStatus.DRAFT.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.DONE.value,
]

# Statuses accepted when an order is submitted
SUBMITTABLE_ORDER_STATUSES: List[str] = [
    OrderStatus.DRAFT.value,
    OrderStatus.OPEN.value,
]


def get_allowed_order_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for an order"""
    return sorted(s.value for s in ORDER_TRANSITIONS.get(current_status, set()))


def is_valid_order_transition(current_status: str, new_status: str) -> bool:
    """Check if an order status transition is valid"""
    if current_status == new_status:
        return True  # No change is always valid
    allowed = ORDER_TRANSITIONS.get(current_status, set())
    return new_status in allowed


# =============================================================================
# Order Item shortage handling
# =============================================================================

class ShortageAction(str, Enum):
    """What happens to the part of a line that stock cannot cover"""
    PRODUCE = "PRODUCE"
    BUY = "BUY"


# =============================================================================
# Production Task Status
# =============================================================================

class ProductionTaskStatus(str, Enum):
    """Valid status values for Production Tasks (DONE is terminal)"""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class ProductionTaskAction(str, Enum):
    """Actions accepted by the production task tracker"""
    START = "start"
    COMPLETE = "complete"


# =============================================================================
# Inventory Receipts
# =============================================================================

class ReceiptStatus(str, Enum):
    """Receipts are drafted, then posted exactly once"""
    DRAFT = "DRAFT"
    POSTED = "POSTED"


class ReceiptType(str, Enum):
    """GENERAL replenishes stock; PRODUCTION replenishes a specific order"""
    GENERAL = "GENERAL"
    PRODUCTION = "PRODUCTION"
