"""Domain models and helpers."""

from .models import (
    ActivityLogEntry,
    LineItem,
    MenuItem,
    Order,
    Role,
    Settings,
    StaffAccount,
    normalize_items,
)
from .order_status import (
    TERMINAL,
    OrderStatus,
    available_actions,
    can_transition,
    is_terminal,
    parse_status,
)

__all__ = [
    "ActivityLogEntry",
    "LineItem",
    "MenuItem",
    "Order",
    "OrderStatus",
    "Role",
    "Settings",
    "StaffAccount",
    "TERMINAL",
    "available_actions",
    "can_transition",
    "is_terminal",
    "normalize_items",
    "parse_status",
]
