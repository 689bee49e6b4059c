"""Long-lived order subscriptions producing immutable view states.

A feed owns exactly one store subscription between :meth:`start` and
:meth:`stop`. Every delivered snapshot is folded into a brand new
:class:`FeedState` by a pure reducer; nothing is patched in place, so
re-delivery of the same snapshot yields an equivalent state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from ..domain.models import Order
from ..store import ORDERS, DocumentSnapshot, DocumentStore, Subscription
from .projector import customer_visible, detect_new_order, new_order_notice, project_orders

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FeedState:
    """Display-ready orders plus the optional transient new-order notice."""

    orders: tuple[Order, ...] = ()
    seen_ids: frozenset[str] = frozenset()
    notice: Optional[str] = None
    notice_expires_at: Optional[datetime] = None
    new_order_id: Optional[str] = None

    def visible_notice(self, now: datetime | None = None) -> Optional[str]:
        """Return the notice while it has not expired yet."""

        if self.notice is None or self.notice_expires_at is None:
            return None
        if (now or _utcnow()) >= self.notice_expires_at:
            return None
        return self.notice


def next_state(
    previous: FeedState,
    orders: Sequence[Order],
    now: datetime,
    notice_ttl: timedelta,
) -> FeedState:
    """Fold a full snapshot of ``orders`` into the state following ``previous``.

    A notice raised by an earlier snapshot keeps running until it expires.
    """

    arrived = detect_new_order(previous.seen_ids, orders)
    notice, expires_at = previous.notice, previous.notice_expires_at
    if arrived is not None:
        notice, expires_at = new_order_notice(arrived), now + notice_ttl
    elif previous.visible_notice(now) is None:
        notice, expires_at = None, None
    return FeedState(
        orders=tuple(project_orders(orders)),
        seen_ids=frozenset(order.id for order in orders),
        notice=notice,
        notice_expires_at=expires_at,
        new_order_id=arrived.id if arrived is not None else None,
    )


def _orders_from(snapshot: List[DocumentSnapshot]) -> List[Order]:
    return [Order.from_document(doc.id, doc.data) for doc in snapshot]


class OrderFeed:
    """Staff and admin view over the whole ``orders`` collection."""

    def __init__(
        self,
        store: DocumentStore,
        notice_ttl_secs: float = 3,
        on_change: Callable[[FeedState], None] | None = None,
        on_new_order: Callable[[Order], None] | None = None,
        clock: Clock = _utcnow,
    ) -> None:
        self.store = store
        self.notice_ttl = timedelta(seconds=notice_ttl_secs)
        self.on_change = on_change
        self.on_new_order = on_new_order
        self.clock = clock
        self.state = FeedState()
        self.last_error: Exception | None = None
        self._subscription: Subscription | None = None

    @property
    def running(self) -> bool:
        return self._subscription is not None

    def start(self) -> "OrderFeed":
        if self._subscription is None:
            self._subscription = self.store.subscribe(
                ORDERS, self._on_snapshot, self._on_error
            )
        return self

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self) -> "OrderFeed":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _reduce(self, orders: List[Order]) -> FeedState:
        return next_state(self.state, orders, self.clock(), self.notice_ttl)

    def _on_snapshot(self, snapshot: List[DocumentSnapshot]) -> None:
        orders = _orders_from(snapshot)
        self.state = self._reduce(orders)
        self.last_error = None
        if self.state.new_order_id is not None and self.on_new_order is not None:
            arrived = next(o for o in orders if o.id == self.state.new_order_id)
            self.on_new_order(arrived)
        if self.on_change is not None:
            self.on_change(self.state)

    def _on_error(self, exc: Exception) -> None:
        # Keep showing the last known orders.
        logger.error("orders listener error: %s", exc)
        self.last_error = exc


class CustomerOrderFeed(OrderFeed):
    """Active orders of a single table; finished or cancelled ones are hidden."""

    def __init__(
        self,
        store: DocumentStore,
        table_number: str,
        on_change: Callable[[FeedState], None] | None = None,
        clock: Clock = _utcnow,
    ) -> None:
        super().__init__(store, on_change=on_change, clock=clock)
        self.table_number = table_number

    def _reduce(self, orders: List[Order]) -> FeedState:
        visible = customer_visible(orders, self.table_number)
        return FeedState(
            orders=tuple(visible), seen_ids=frozenset(o.id for o in visible)
        )


@dataclass
class OrderTracker:
    """Follow the status of one order the customer just placed."""

    store: DocumentStore
    order_id: str
    on_change: Callable[[Optional[str]], None] | None = None
    status: Optional[str] = None
    _subscription: Optional[Subscription] = field(default=None, repr=False)

    def start(self) -> "OrderTracker":
        if self._subscription is None:
            self._subscription = self.store.subscribe_document(
                ORDERS, self.order_id, self._on_snapshot, self._on_error
            )
        return self

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_snapshot(self, snapshot: DocumentSnapshot) -> None:
        if not snapshot.exists:
            return
        self.status = Order.from_document(snapshot.id, snapshot.data).status
        if self.on_change is not None:
            self.on_change(self.status)

    def _on_error(self, exc: Exception) -> None:
        logger.error("order tracker error for %s: %s", self.order_id, exc)


__all__ = ["CustomerOrderFeed", "FeedState", "OrderFeed", "OrderTracker", "next_state"]
