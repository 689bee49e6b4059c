"""Server-Sent Events bridge for order feeds.

Store listeners fire on whichever thread committed the write, so each state
is handed to the event loop with ``call_soon_threadsafe``. Every event carries
the complete projected list; when a client falls behind only the newest state
is kept.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import Request

from ..billing.calculator import bill_for_order
from ..domain.models import Order
from .feeds import FeedState

KEEPALIVE_INTERVAL = 15


def order_payload(order: Order, settings: Any = None) -> Dict[str, Any]:
    """Order JSON with display totals from the bill calculator."""

    data = order.to_json()
    data["bill"] = bill_for_order(order, settings).rounded()
    return data


def state_payload(state: FeedState, settings: Any = None) -> Dict[str, Any]:
    expires = state.notice_expires_at
    return {
        "orders": [order_payload(order, settings) for order in state.orders],
        "notice": state.visible_notice(),
        "noticeExpiresAt": expires.isoformat() if expires else None,
        "newOrderId": state.new_order_id,
    }


def sse_message(event: str, data: Any, event_id: Optional[int] = None) -> str:
    lines = [f"event: {event}"]
    if event_id is not None:
        lines.append(f"id: {event_id}")
    lines.append(f"data: {json.dumps(data, ensure_ascii=False)}")
    return "\n".join(lines) + "\n\n"


async def stream_feed(
    request: Request,
    make_feed: Callable[[Callable[[Any], None]], Any],
    settings: Any = None,
    event: str = "orders",
    render: Optional[Callable[[Any], Any]] = None,
) -> AsyncIterator[str]:
    """Yield SSE messages for every state of the feed built by ``make_feed``.

    ``make_feed`` receives the change callback and returns an object with
    ``start()`` and ``stop()``; ``render`` turns each published state into
    the event data and defaults to :func:`state_payload`.
    """

    if render is None:
        render = lambda state: state_payload(state, settings)  # noqa: E731
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)

    def offer(state: Any) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(state)

    def on_change(state: Any) -> None:
        loop.call_soon_threadsafe(offer, state)

    feed = make_feed(on_change)
    # The first snapshot is read from the store synchronously.
    await asyncio.to_thread(feed.start)
    seq = 0
    try:
        while not await request.is_disconnected():
            try:
                state = await asyncio.wait_for(queue.get(), KEEPALIVE_INTERVAL)
            except asyncio.TimeoutError:
                yield ":keepalive\n\n"
                continue
            seq += 1
            yield sse_message(event, render(state), seq)
    finally:
        feed.stop()
