"""Order placement and lifecycle actions.

Each mutating helper performs its primary store write first and only then
records an activity log entry; a failing log never undoes the write.
Illegal requests are rejected before anything is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping

from ..billing.calculator import compute_bill
from ..domain.models import Order, Settings, normalize_items
from ..domain.order_status import OrderStatus, can_transition, is_terminal, parse_status
from ..errors import (
    ConfirmationRequired,
    InvalidTransition,
    NotFound,
    SmartCafeError,
    ValidationError,
)
from ..store import ORDERS, SERVER_TIMESTAMP, DocumentStore
from .activity_log import log_activity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    phone: str = ""
    email: str = ""


@dataclass(frozen=True)
class BulkDeleteResult:
    """Aggregate outcome of a bulk deletion."""

    requested: int
    deletable: int
    deleted: int
    ok: bool
    message: str


def load_orders(store: DocumentStore) -> List[Order]:
    return [Order.from_document(doc.id, doc.data) for doc in store.list(ORDERS)]


def get_order(store: DocumentStore, order_id: str) -> Order:
    data = store.get(ORDERS, order_id)
    if data is None:
        raise NotFound("Order not found")
    return Order.from_document(order_id, data)


def place_order(
    store: DocumentStore,
    table_number: str,
    customer: CustomerInfo,
    cart: Iterable[Mapping[str, Any]],
    settings: Settings,
) -> str:
    """Persist a new ``Pending`` order and return its id.

    Totals are computed with the live tax rate, which is stored on the order
    so later rate changes never alter it.
    """

    items = normalize_items(list(cart or []))
    if not items:
        raise ValidationError("Your cart is empty!")
    if not customer.name.strip():
        raise ValidationError("Please enter your name")

    bill = compute_bill(items, settings.tax_percent)
    data = {
        "tableNumber": table_number,
        "customerName": customer.name.strip(),
        "customerPhone": customer.phone.strip(),
        "customerEmail": customer.email.strip(),
        "items": [item.to_document() for item in items],
        "status": OrderStatus.PENDING.value,
        "taxPercent": bill.tax_percent,
        "subtotal": bill.subtotal,
        "tax": bill.tax,
        "total": bill.total,
        "timestamp": SERVER_TIMESTAMP,
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
    }
    order_id = store.add(ORDERS, data)
    logger.info("order %s placed for table %s", order_id, table_number)
    return order_id


def _set_status(
    store: DocumentStore,
    order: Order,
    target: OrderStatus,
    actor: Any,
    action: str,
) -> Order:
    if not can_transition(order.status, target):
        raise InvalidTransition(
            f"Order is {order.status or 'closed'}; its status can no longer change"
        )
    store.update(
        ORDERS, order.id, {"status": target.value, "updatedAt": SERVER_TIMESTAMP}
    )
    log_activity(
        store,
        action,
        {"orderId": order.id, "previousStatus": order.status, "newStatus": target.value},
        actor,
    )
    return get_order(store, order.id)


def change_status(
    store: DocumentStore, order_id: str, new_status: Any, actor: Any = None
) -> Order:
    """Move a non-terminal order to any status of the enumeration."""

    target = parse_status(new_status)
    if target is None:
        raise ValidationError(f"Unknown order status: {new_status!r}")
    order = get_order(store, order_id)
    return _set_status(store, order, target, actor, "order_status_update")


def cancel_order(
    store: DocumentStore, order_id: str, actor: Any = None, confirmed: bool = False
) -> Order:
    """Cancel a non-terminal order after explicit confirmation."""

    order = get_order(store, order_id)
    if is_terminal(order.status):
        raise InvalidTransition("Only active orders can be cancelled")
    if not confirmed:
        raise ConfirmationRequired("Are you sure you want to cancel this order?")
    return _set_status(store, order, OrderStatus.CANCELLED, actor, "order_cancelled")


def delete_order(
    store: DocumentStore, order_id: str, actor: Any = None, confirmed: bool = False
) -> None:
    """Permanently delete a completed or cancelled order."""

    order = get_order(store, order_id)
    if not is_terminal(order.status):
        raise InvalidTransition("Only completed or cancelled orders can be deleted")
    if not confirmed:
        raise ConfirmationRequired(
            "Delete this order permanently? This action cannot be undone."
        )
    store.delete(ORDERS, order_id)
    log_activity(store, "order_delete", {"orderId": order_id}, actor)


def deletable_ids(orders: Iterable[Order], selected: Iterable[str]) -> List[str]:
    """Subset of ``selected`` whose orders are in a terminal state."""

    terminal = {order.id for order in orders if is_terminal(order.status)}
    seen: set[str] = set()
    result: list[str] = []
    for order_id in selected:
        if order_id in terminal and order_id not in seen:
            seen.add(order_id)
            result.append(order_id)
    return result


def bulk_delete(
    store: DocumentStore,
    order_ids: Iterable[str],
    confirm: Callable[[int], bool],
    actor: Any = None,
) -> BulkDeleteResult:
    """Delete the terminal orders among ``order_ids``.

    ``confirm`` receives the number of orders that will actually be deleted.
    Deletion is sequential and stops at the first failure; orders deleted
    before it stay deleted.
    """

    requested = list(dict.fromkeys(order_ids))
    found: list[Order] = []
    for order_id in requested:
        data = store.get(ORDERS, order_id)
        if data is not None:
            found.append(Order.from_document(order_id, data))
    targets = deletable_ids(found, requested)
    if not targets:
        raise ValidationError("No cancelled or completed orders selected for deletion.")
    if not confirm(len(targets)):
        raise ConfirmationRequired(
            f"Delete {len(targets)} cancelled/completed orders permanently? "
            "This action cannot be undone.",
            details={"deletable": len(targets)},
        )

    deleted = 0
    for order_id in targets:
        try:
            store.delete(ORDERS, order_id)
        except SmartCafeError as exc:
            logger.error("bulk delete stopped at %s: %s", order_id, exc)
            return BulkDeleteResult(
                requested=len(requested),
                deletable=len(targets),
                deleted=deleted,
                ok=False,
                message="Could not delete some orders.",
            )
        deleted += 1
        log_activity(store, "order_bulk_delete", {"orderId": order_id}, actor)
    return BulkDeleteResult(
        requested=len(requested),
        deletable=len(targets),
        deleted=deleted,
        ok=True,
        message=f"Successfully deleted {deleted} orders.",
    )


def order_for_table(store: DocumentStore, order_id: str, table_number: str) -> Order:
    """Return ``order_id`` only if it belongs to ``table_number``."""

    order = get_order(store, order_id)
    if order.table_number != table_number:
        raise NotFound("Order not found")
    return order


__all__ = [
    "BulkDeleteResult",
    "CustomerInfo",
    "bulk_delete",
    "cancel_order",
    "change_status",
    "deletable_ids",
    "delete_order",
    "get_order",
    "load_orders",
    "order_for_table",
    "place_order",
]
