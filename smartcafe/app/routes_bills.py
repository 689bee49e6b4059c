# routes_bills.py

"""Bill download routes for staff and for the customer's own table.

Rendering is CPU and file bound, so the handlers are plain functions and run
in the threadpool instead of on the event loop.
"""

from __future__ import annotations

from typing import Callable, Literal, TypeVar
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response

from .auth import User, staff_or_admin
from .deps.services import get_config, get_restaurant_settings, get_store
from .domain.models import Order, Settings
from .errors import BillGenerationError
from .pdf.bill import bill_filename, render_bill, write_bill
from .routes_metrics import bill_failures_total, bills_generated_total
from .services.orders_service import get_order, order_for_table
from .store import DocumentStore
from .utils.responses import ok

router = APIRouter()

BillFormat = Literal["pdf", "html"]
T = TypeVar("T")


def content_disposition(filename: str) -> str:
    """``attachment`` header value that survives any table identifier.

    Header values travel as latin-1, so the plain ``filename`` is reduced to
    ASCII and the exact name goes into the RFC 5987 ``filename*`` parameter.
    """

    fallback = "".join(
        ch if ch.isascii() and ch.isprintable() and ch not in '"\\/' else "_"
        for ch in filename
    )
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _counted(render: Callable[[], T]) -> T:
    try:
        result = render()
    except BillGenerationError:
        bill_failures_total.inc()
        raise
    bills_generated_total.inc()
    return result


def bill_response(
    order: Order, settings: Settings, fmt: BillFormat, title: str
) -> Response:
    body = _counted(lambda: render_bill(order, settings, title=title, fmt=fmt))
    if fmt == "html":
        return Response(body, media_type="text/html; charset=utf-8")
    return Response(
        body,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(bill_filename(order))},
    )


@router.get("/api/orders/{order_id}/bill")
def staff_bill(
    order_id: str,
    format: BillFormat = "pdf",
    title: str = "Restaurant Bill",
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(staff_or_admin),
) -> Response:
    return bill_response(get_order(store, order_id), settings, format, title)


@router.post("/api/orders/{order_id}/bill/save", status_code=201)
def save_bill(
    order_id: str,
    request: Request,
    title: str = "Restaurant Bill",
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(staff_or_admin),
) -> dict:
    """Write the PDF bill into the configured bill directory."""

    order = get_order(store, order_id)
    directory = get_config(request).bill_dir
    path = _counted(lambda: write_bill(order, directory, settings, title))
    return ok({"id": order.id, "file": path.name})


@router.get("/g/{table}/orders/{order_id}/bill")
def guest_bill(
    table: str,
    order_id: str,
    format: BillFormat = "pdf",
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
) -> Response:
    """Bill of an order placed at ``table``."""

    order = order_for_table(store, order_id, table)
    return bill_response(order, settings, format, "Restaurant Bill")
