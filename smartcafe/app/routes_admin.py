# routes_admin.py

"""Admin console routes: order cleanup, menu, settings, staff, reports and QR."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from .auth import User, admin_only
from .deps.services import (
    get_auth,
    get_config,
    get_restaurant_settings,
    get_settings_editor,
    get_storage,
    get_store,
)
from .domain.models import Role, Settings
from .qr import generate_table_qr, qr_image_url, table_menu_url
from .realtime.projector import OrderFilter, project_orders
from .routes_metrics import orders_deleted_total
from .routes_staff import order_filter
from .services import menu_service, orders_service, staff_service
from .services.reports import sales_csv, sales_filename
from .services.settings_service import SettingsEditor
from .store import DocumentStore
from .utils.responses import ok

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


class BulkDeletePayload(BaseModel):
    ids: List[str] = Field(default_factory=list)
    confirm: bool = False


class MenuItemPayload(BaseModel):
    name: str
    price: float | str
    description: str = ""
    category: str = ""
    image: str = ""
    available: bool = True


class MenuItemPatch(BaseModel):
    name: Optional[str] = None
    price: Optional[float | str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    available: Optional[bool] = None


class SettingsPayload(BaseModel):
    restaurant_name: Optional[str] = None
    tax_percent: Optional[float | str] = None
    logo_url: Optional[str] = None
    contact: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None


class StaffPayload(BaseModel):
    email: str
    password: str
    name: str
    role: Role = Role.STAFF


# Orders


@router.delete("/orders/{order_id}")
def delete_order(
    order_id: str,
    confirm: bool = False,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(admin_only),
) -> dict:
    """Delete a completed or cancelled order; requires ``confirm=true``."""

    orders_service.delete_order(store, order_id, actor=user, confirmed=confirm)
    orders_deleted_total.inc()
    return ok({"id": order_id})


@router.post("/orders/bulk-delete")
def bulk_delete(
    payload: BulkDeletePayload,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(admin_only),
) -> dict:
    result = orders_service.bulk_delete(
        store, payload.ids, confirm=lambda count: payload.confirm, actor=user
    )
    orders_deleted_total.inc(result.deleted)
    return ok(
        {
            "requested": result.requested,
            "deletable": result.deletable,
            "deleted": result.deleted,
            "ok": result.ok,
            "message": result.message,
        }
    )


# Menu


@router.get("/menu")
def list_menu(
    store: DocumentStore = Depends(get_store), user: User = Depends(admin_only)
) -> dict:
    return ok([item.to_json() for item in menu_service.list_menu(store)])


@router.post("/menu", status_code=201)
def create_menu_item(
    payload: MenuItemPayload,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(admin_only),
) -> dict:
    item = menu_service.create_item(store, payload.model_dump(), actor=user)
    return ok(item.to_json())


@router.patch("/menu/{item_id}")
def update_menu_item(
    item_id: str,
    payload: MenuItemPatch,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(admin_only),
) -> dict:
    changes = payload.model_dump(exclude_unset=True)
    item = menu_service.update_item(store, item_id, changes, actor=user)
    return ok(item.to_json())


@router.delete("/menu/{item_id}")
def delete_menu_item(
    item_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(admin_only),
) -> dict:
    menu_service.delete_item(store, item_id, actor=user)
    return ok({"id": item_id})


@router.post("/menu/images", status_code=201)
async def upload_menu_image(
    request: Request,
    file: UploadFile = File(...),
    user: User = Depends(admin_only),
) -> dict:
    """Store an image and return the URL to put on a menu item."""

    data = await file.read()
    storage = get_storage(request)
    url = await asyncio.to_thread(storage.upload, file.filename or "", data)
    logger.info("menu image uploaded")
    return ok({"url": url})


# Settings


@router.get("/settings")
def read_settings(
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(admin_only),
) -> dict:
    return ok(settings.to_document())


@router.put("/settings")
def update_settings(
    payload: SettingsPayload,
    editor: SettingsEditor = Depends(get_settings_editor),
    user: User = Depends(admin_only),
) -> dict:
    """Merge the provided fields into the settings document."""

    changes = payload.model_dump(exclude_unset=True)
    saved = editor.save(changes, actor=user)
    return ok(saved.to_document())


# Staff


@router.get("/staff")
def list_staff(
    store: DocumentStore = Depends(get_store), user: User = Depends(admin_only)
) -> dict:
    return ok([account.to_json() for account in staff_service.list_staff(store)])


@router.post("/staff", status_code=201)
def add_staff(
    payload: StaffPayload,
    request: Request,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(admin_only),
) -> dict:
    account = staff_service.add_staff(
        store,
        get_auth(request),
        payload.email,
        payload.password,
        payload.name,
        payload.role,
        actor=user,
    )
    return ok(account.to_json())


@router.delete("/staff/{staff_id}")
def delete_staff(
    staff_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(admin_only),
) -> dict:
    staff_service.delete_staff(store, staff_id, actor=user)
    return ok({"id": staff_id})


# Reports


@router.get("/reports/sales.csv")
def sales_report(
    filters: OrderFilter = Depends(order_filter),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_restaurant_settings),
    user: User = Depends(admin_only),
) -> Response:
    """CSV export of the filtered order list."""

    orders = project_orders(filters.apply(orders_service.load_orders(store)))
    body = sales_csv(orders, settings)
    return Response(
        body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{sales_filename()}"'},
    )


# QR


@router.get("/qr/{table}")
def table_qr(
    table: str, request: Request, user: User = Depends(admin_only)
) -> dict:
    config = get_config(request)
    url = table_menu_url(config.public_base_url, table)
    return ok(
        {
            "table": table,
            "url": url,
            "image": qr_image_url(url, config.qr_endpoint, config.qr_size),
        }
    )


@router.get("/qr/{table}/png")
def table_qr_png(
    table: str, request: Request, user: User = Depends(admin_only)
) -> FileResponse:
    config = get_config(request)
    path = generate_table_qr(
        table, config.public_base_url, Path(config.media_dir) / "qr"
    )
    return FileResponse(path, media_type="image/png", filename=Path(path).name)
