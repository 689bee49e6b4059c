"""Server-Sent Events streams of live order snapshots.

Board and table streams send ``event: orders`` with a per-connection
increasing ``id`` and the complete projected order list as data, so a
reconnecting client only needs the next event to be current again. The
single-order stream sends ``event: status`` with the current status.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from .auth import User, staff_or_admin
from .deps.services import get_config, get_restaurant_settings, get_store
from .domain.models import Role, Settings
from .realtime.feeds import CustomerOrderFeed, OrderFeed, OrderTracker
from .realtime.sse import stream_feed
from .routes_metrics import stream_clients_gauge
from .services.orders_service import order_for_table
from .store import DocumentStore

router = APIRouter()

_SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def notice_ttl_for(config, role: Role) -> float:
    """Seconds a new-order notice stays visible on the board of ``role``."""

    if role is Role.ADMIN:
        return config.notification_ttl_secs
    return config.staff_notification_ttl_secs


async def _counted(gen, audience: str):
    gauge = stream_clients_gauge.labels(audience=audience)
    gauge.inc()
    try:
        async for chunk in gen:
            yield chunk
    finally:
        gauge.dec()


@router.get(
    "/api/orders/stream",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}},
)
async def stream_orders(
    request: Request,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(staff_or_admin),
) -> StreamingResponse:
    """Stream the staff order board with new-order notices."""

    ttl = notice_ttl_for(get_config(request), user.role)

    def make_feed(on_change):
        return OrderFeed(
            store,
            notice_ttl_secs=ttl,
            on_change=on_change,
        )

    events = stream_feed(request, make_feed, settings)
    return StreamingResponse(
        _counted(events, "staff"), media_type="text/event-stream", headers=_SSE_HEADERS
    )


@router.get(
    "/g/{table}/orders/stream",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}},
)
async def stream_table_orders(
    table: str,
    request: Request,
    store: DocumentStore = Depends(get_store),
) -> StreamingResponse:
    """Stream the active orders of one table."""

    def make_feed(on_change):
        return CustomerOrderFeed(store, table, on_change=on_change)

    events = stream_feed(request, make_feed)
    return StreamingResponse(
        _counted(events, "guest"), media_type="text/event-stream", headers=_SSE_HEADERS
    )


def tracker_payload(order_id: str, status) -> dict:
    return {"id": order_id, "status": status}


@router.get(
    "/g/{table}/orders/{order_id}/stream",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}},
)
async def stream_order_status(
    table: str,
    order_id: str,
    request: Request,
    store: DocumentStore = Depends(get_store),
) -> StreamingResponse:
    """Stream status changes of one order placed at ``table``."""

    await asyncio.to_thread(order_for_table, store, order_id, table)

    def make_feed(on_change):
        return OrderTracker(store, order_id, on_change=on_change)

    events = stream_feed(
        request,
        make_feed,
        event="status",
        render=lambda status: tracker_payload(order_id, status),
    )
    return StreamingResponse(
        _counted(events, "guest"), media_type="text/event-stream", headers=_SSE_HEADERS
    )
