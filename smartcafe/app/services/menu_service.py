"""Menu management for admins and menu browsing for customers."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..billing.calculator import _to_decimal
from ..domain.models import MenuItem
from ..errors import NotFound, ValidationError
from ..store import MENU, DocumentStore
from .activity_log import log_activity

logger = logging.getLogger(__name__)

PRICE_BANDS = ("low", "medium", "high")
LOW_MAX = Decimal("200")
MEDIUM_MAX = Decimal("500")

_FIELDS = ("name", "price", "description", "category", "image", "available")


def _validated(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    unknown = set(data) - set(_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown menu fields: {', '.join(sorted(unknown))}")
    doc: Dict[str, Any] = {}
    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("Please fill in name and price")
        doc["name"] = name
    if "price" in data or not partial:
        raw = data.get("price")
        if isinstance(raw, str):
            raw = raw.strip()
        price = None if raw in (None, "") else _to_decimal(raw)
        if price is None or price < 0:
            raise ValidationError("Please enter a valid price")
        doc["price"] = float(price)
    for key in ("description", "category", "image"):
        if key in data or not partial:
            doc[key] = str(data.get(key) or "").strip()
    if "available" in data or not partial:
        doc["available"] = data.get("available", True) is not False
    return doc


def list_menu(store: DocumentStore) -> List[MenuItem]:
    return [MenuItem.from_document(doc.id, doc.data) for doc in store.list(MENU)]


def get_item(store: DocumentStore, item_id: str) -> MenuItem:
    data = store.get(MENU, item_id)
    if data is None:
        raise NotFound("Menu item not found")
    return MenuItem.from_document(item_id, data)


def create_item(store: DocumentStore, data: Mapping[str, Any], actor: Any = None) -> MenuItem:
    doc = _validated(data)
    item_id = store.add(MENU, doc)
    log_activity(store, "menu_add", {"itemId": item_id, "name": doc["name"]}, actor)
    logger.info("menu item %s added", item_id)
    return MenuItem.from_document(item_id, doc)


def update_item(
    store: DocumentStore, item_id: str, changes: Mapping[str, Any], actor: Any = None
) -> MenuItem:
    doc = _validated(changes, partial=True)
    if not doc:
        raise ValidationError("Nothing to update")
    store.update(MENU, item_id, doc)
    log_activity(store, "menu_update", {"itemId": item_id}, actor)
    return get_item(store, item_id)


def delete_item(store: DocumentStore, item_id: str, actor: Any = None) -> None:
    item = get_item(store, item_id)
    store.delete(MENU, item_id)
    log_activity(store, "menu_delete", {"itemId": item_id, "name": item.name}, actor)


def available_items(items: Iterable[MenuItem]) -> List[MenuItem]:
    """Items a customer may order; missing ``available`` counts as true."""

    return [item for item in items if item.available]


def in_price_band(price: Decimal, band: Optional[str]) -> bool:
    if not band or band == "all":
        return True
    if band == "low":
        return price <= LOW_MAX
    if band == "medium":
        return LOW_MAX < price <= MEDIUM_MAX
    if band == "high":
        return price > MEDIUM_MAX
    raise ValidationError(f"Unknown price range: {band!r}")


def filter_menu(
    items: Iterable[MenuItem],
    search: str = "",
    category: Optional[str] = None,
    price_range: Optional[str] = None,
) -> List[MenuItem]:
    """Customer menu browsing.

    ``search`` matches name or description case-insensitively; ``category``
    and ``price_range`` accept ``"all"`` or ``None`` to disable them.
    """

    needle = (search or "").strip().lower()
    result = []
    for item in available_items(items):
        if needle and needle not in item.name.lower() and needle not in item.description.lower():
            continue
        if category and category != "all" and item.category != category:
            continue
        if not in_price_band(item.price, price_range):
            continue
        result.append(item)
    return result


def categories(items: Iterable[MenuItem]) -> List[str]:
    """Distinct non-empty categories in first-seen order."""

    return list(dict.fromkeys(item.category for item in items if item.category))


__all__ = [
    "PRICE_BANDS",
    "available_items",
    "categories",
    "create_item",
    "delete_item",
    "filter_menu",
    "get_item",
    "list_menu",
    "update_item",
]
