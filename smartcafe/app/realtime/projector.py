"""Pure transformations from order snapshots to display-ready sequences.

Nothing here talks to the store; :mod:`smartcafe.app.realtime.feeds` wires
these functions to live subscriptions.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, Iterable, List, Optional, Sequence

from ..domain.models import EPOCH, Order, coerce_timestamp
from ..domain.order_status import OrderStatus

_HIDDEN_FROM_CUSTOMER = {"completed", "cancelled"}


def last_known_time(order: Order) -> datetime:
    """Most recent known instant: ``updatedAt``, ``timestamp``, ``createdAt``."""

    return order.updated_at or order.timestamp or order.created_at or EPOCH


def is_completed(order: Order) -> bool:
    return order.status.strip().lower() == OrderStatus.COMPLETED.value.lower()


def project_orders(orders: Iterable[Order]) -> List[Order]:
    """Return active orders newest first, followed by completed ones newest first."""

    active: list[Order] = []
    completed: list[Order] = []
    for order in orders:
        (completed if is_completed(order) else active).append(order)
    active.sort(key=last_known_time, reverse=True)
    completed.sort(key=last_known_time, reverse=True)
    return active + completed


def detect_new_order(
    previous_ids: AbstractSet[str], orders: Sequence[Order]
) -> Optional[Order]:
    """Return the first order of ``orders`` whose id is not in ``previous_ids``.

    An empty ``previous_ids`` means nothing was loaded yet, so the initial
    snapshot never counts as a new arrival.
    """

    if not previous_ids:
        return None
    for order in orders:
        if order.id not in previous_ids:
            return order
    return None


def new_order_notice(order: Order) -> str:
    if order.table_number:
        return f"New order at table {order.table_number}"
    return "New order"


def customer_visible(orders: Iterable[Order], table_number: str) -> List[Order]:
    """Orders of ``table_number`` that are neither completed nor cancelled."""

    return [
        order
        for order in orders
        if order.table_number == table_number
        and order.status.strip().lower() not in _HIDDEN_FROM_CUSTOMER
    ]


def status_counts(orders: Iterable[Order]) -> dict[str, int]:
    """Number of orders per known status, for dashboard tiles."""

    counts = Counter(order.status for order in orders)
    return {status.value: counts.get(status.value, 0) for status in OrderStatus}


@dataclass(frozen=True)
class OrderFilter:
    """Search predicates for the staff and admin order lists; all are ANDed."""

    table: str = ""
    status: str | None = None
    search: str = ""
    date_from: datetime | None = None
    date_to: datetime | None = None

    def __post_init__(self) -> None:
        # Naive bounds are taken as UTC like every stored timestamp.
        object.__setattr__(self, "date_from", coerce_timestamp(self.date_from))
        object.__setattr__(self, "date_to", coerce_timestamp(self.date_to))

    def matches(self, order: Order) -> bool:
        if self.table and self.table.lower() not in order.table_number.lower():
            return False
        if self.status and self.status != "all" and order.status != self.status:
            return False
        if self.search and not self._matches_text(order):
            return False
        placed = order.timestamp or EPOCH
        if self.date_from is not None and placed < self.date_from:
            return False
        if self.date_to is not None and placed > self.date_to:
            return False
        return True

    def _matches_text(self, order: Order) -> bool:
        needle = self.search.lower()
        items = json.dumps([item.to_document() for item in order.items])
        haystacks = (order.id, order.customer_name, order.table_number, items)
        return any(needle in text.lower() for text in haystacks)

    def apply(self, orders: Iterable[Order]) -> List[Order]:
        return [order for order in orders if self.matches(order)]


__all__ = [
    "OrderFilter",
    "customer_visible",
    "detect_new_order",
    "is_completed",
    "last_known_time",
    "new_order_notice",
    "project_orders",
    "status_counts",
]
