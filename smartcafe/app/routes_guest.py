# routes_guest.py

"""Customer-facing routes reached through a table's QR link."""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from .domain.models import Settings
from .errors import NotFound, ValidationError
from .qr import table_from_query
from .realtime.projector import customer_visible
from .realtime.sse import order_payload
from .routes_metrics import orders_created_total
from .services import menu_service
from .services.cart import Cart
from .services.orders_service import CustomerInfo, load_orders, order_for_table, place_order
from .deps.services import get_config, get_restaurant_settings, get_store
from .store import DocumentStore
from .utils.responses import ok

router = APIRouter(prefix="/g/{table}")
entry_router = APIRouter()
logger = logging.getLogger(__name__)


class CartEntry(BaseModel):
    id: str
    quantity: int = Field(default=1)


class CustomerPayload(BaseModel):
    name: str = ""
    phone: str = ""
    email: str = ""


class PlaceOrderPayload(BaseModel):
    customer: CustomerPayload
    items: List[CartEntry] = Field(default_factory=list)


@router.get("/menu")
def guest_menu(
    table: str,
    search: str = "",
    category: Optional[str] = None,
    price_range: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
) -> dict:
    """Available menu items with the customer's search and filters applied."""

    items = menu_service.list_menu(store)
    visible = menu_service.available_items(items)
    filtered = menu_service.filter_menu(visible, search, category, price_range)
    return ok(
        {
            "table": table,
            "items": [item.to_json() for item in filtered],
            "categories": menu_service.categories(visible),
        }
    )


@router.get("/settings")
def guest_settings(
    table: str, settings: Settings = Depends(get_restaurant_settings)
) -> dict:
    return ok(settings.to_document())


@router.post("/orders", status_code=201)
def guest_place_order(
    table: str,
    payload: PlaceOrderPayload,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
) -> dict:
    """Place an order for ``table``; prices are taken from the menu."""

    cart = Cart()
    for entry in payload.items:
        try:
            item = menu_service.get_item(store, entry.id)
        except NotFound:
            raise ValidationError("Some items are no longer on the menu") from None
        if not item.available:
            raise ValidationError(f"{item.name} is currently unavailable")
        cart.add(item, entry.quantity)

    customer = CustomerInfo(
        name=payload.customer.name,
        phone=payload.customer.phone,
        email=payload.customer.email,
    )
    order_id = place_order(store, table, customer, cart.items(), settings)
    orders_created_total.inc()
    return ok({"id": order_id})


@router.get("/orders")
def guest_orders(table: str, store: DocumentStore = Depends(get_store)) -> dict:
    """Active orders of this table."""

    orders = customer_visible(load_orders(store), table)
    return ok([order_payload(order) for order in orders])


@router.get("/orders/{order_id}")
def guest_order(
    table: str, order_id: str, store: DocumentStore = Depends(get_store)
) -> dict:
    order = order_for_table(store, order_id, table)
    return ok(order_payload(order))


@entry_router.get("/menu")
def menu_entry(request: Request) -> RedirectResponse:
    """Landing URL encoded in table QR codes: ``/menu?table=<id>``.

    A missing or blank ``table`` falls back to the configured default table.
    """

    table = table_from_query(request.query_params, get_config(request).default_table)
    return RedirectResponse(f"/g/{quote(table, safe='')}/menu", status_code=307)
