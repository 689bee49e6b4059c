# routes_staff.py

"""Order board routes shared by staff and admins."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from .auth import User, staff_or_admin
from .deps.services import get_restaurant_settings, get_store
from .domain.models import Role, Settings
from .domain.order_status import ACTION_DELETE, available_actions
from .realtime.projector import OrderFilter, project_orders, status_counts
from .realtime.sse import order_payload
from .routes_metrics import order_status_changes_total
from .services import orders_service
from .store import DocumentStore
from .utils.responses import ok

router = APIRouter(prefix="/api/orders")


class StatusPayload(BaseModel):
    status: str


class ConfirmPayload(BaseModel):
    confirm: bool = False


# Deleting orders happens in the admin console only.
ADMIN_ONLY_ACTIONS = frozenset({ACTION_DELETE})


def actions_for(status: str, role: Role) -> list[str]:
    """Actions ``role`` may take on an order in ``status``."""

    actions = available_actions(status)
    if role is not Role.ADMIN:
        actions = actions - ADMIN_ONLY_ACTIONS
    return sorted(actions)


def _with_actions(order, settings: Settings, user: User) -> dict:
    data = order_payload(order, settings)
    data["actions"] = actions_for(order.status, user.role)
    return data


def order_filter(
    table: str = "",
    status: Optional[str] = None,
    search: str = "",
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> OrderFilter:
    return OrderFilter(
        table=table,
        status=status,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("")
def list_orders(
    filters: OrderFilter = Depends(order_filter),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(staff_or_admin),
) -> dict:
    """Projected order board: active orders first, newest first."""

    orders = orders_service.load_orders(store)
    board = project_orders(filters.apply(orders))
    return ok(
        {
            "orders": [_with_actions(order, settings, user) for order in board],
            "counts": status_counts(orders),
        }
    )


@router.get("/counts")
def order_counts(
    store: DocumentStore = Depends(get_store),
    user: User = Depends(staff_or_admin),
) -> dict:
    return ok(status_counts(orders_service.load_orders(store)))


@router.get("/{order_id}")
def get_order(
    order_id: str,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(staff_or_admin),
) -> dict:
    return ok(_with_actions(orders_service.get_order(store, order_id), settings, user))


@router.post("/{order_id}/status")
def change_status(
    order_id: str,
    payload: StatusPayload,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(staff_or_admin),
) -> dict:
    order = orders_service.change_status(store, order_id, payload.status, actor=user)
    order_status_changes_total.labels(status=order.status).inc()
    return ok(_with_actions(order, settings, user))


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: str,
    payload: ConfirmPayload,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(staff_or_admin),
) -> dict:
    """Cancel an active order; ``confirm`` must be set."""

    order = orders_service.cancel_order(
        store, order_id, actor=user, confirmed=payload.confirm
    )
    order_status_changes_total.labels(status=order.status).inc()
    return ok(_with_actions(order, settings, user))
