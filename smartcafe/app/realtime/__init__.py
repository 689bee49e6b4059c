"""Realtime order projections and subscriptions."""

from .feeds import CustomerOrderFeed, FeedState, OrderFeed, OrderTracker, next_state
from .projector import (
    OrderFilter,
    customer_visible,
    detect_new_order,
    last_known_time,
    project_orders,
    status_counts,
)

__all__ = [
    "CustomerOrderFeed",
    "FeedState",
    "OrderFeed",
    "OrderFilter",
    "OrderTracker",
    "customer_visible",
    "detect_new_order",
    "last_known_time",
    "next_state",
    "project_orders",
    "status_counts",
]
