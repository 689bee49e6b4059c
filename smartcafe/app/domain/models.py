"""Typed records for documents read from and written to the store.

Documents arrive from the store as loosely shaped dictionaries (camelCase
keys, timestamps in several encodings, ``items`` either a list or a keyed
map). The ``from_document`` constructors below are the single ingestion
boundary: everything downstream works on these dataclasses only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping

from ..billing.calculator import (
    DEFAULT_TAX_PERCENT,
    _to_decimal,
    coerce_price,
    coerce_quantity,
)
from .order_status import OrderStatus

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DEFAULT_RESTAURANT_NAME = "Smart Café"


def coerce_timestamp(value: Any) -> datetime | None:
    """Return ``value`` as an aware UTC ``datetime`` or ``None``.

    Accepts ``datetime`` objects (naive ones are taken as UTC), epoch seconds,
    ISO 8601 strings and ``{"seconds": ..., "nanoseconds": ...}`` mappings.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, Mapping) and "seconds" in value:
        try:
            seconds = float(value.get("seconds") or 0)
            seconds += float(value.get("nanoseconds") or 0) / 1e9
        except (TypeError, ValueError):
            return None
        return coerce_timestamp(seconds)
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return coerce_timestamp(datetime.fromisoformat(raw))
        except ValueError:
            return None
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _amount(value: Any) -> Decimal | None:
    return _to_decimal(value)


def _number(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


@dataclass(frozen=True)
class LineItem:
    """Menu item quantity within an order, with its captured price."""

    name: str
    price: Decimal
    quantity: Decimal
    item_id: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @classmethod
    def from_raw(cls, raw: Any) -> "LineItem":
        if not isinstance(raw, Mapping):
            raw = {}
        item_id = raw.get("id") or raw.get("item_id")
        return cls(
            name=_text(raw.get("name")) or "Item",
            price=coerce_price(raw.get("price")),
            quantity=coerce_quantity(raw.get("quantity", raw.get("qty"))),
            item_id=None if item_id is None else str(item_id),
        )

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "name": self.name,
            "price": float(self.price),
            "quantity": int(self.quantity)
            if self.quantity == self.quantity.to_integral_value()
            else float(self.quantity),
        }
        if self.item_id is not None:
            doc["id"] = self.item_id
        return doc


def normalize_items(raw: Any) -> List[LineItem]:
    """Return ``raw`` line items as an ordered list.

    Legacy documents store ``items`` as a mapping keyed by position or item
    id; mappings keep their insertion order. Anything else yields ``[]``.
    """

    if raw is None:
        return []
    if isinstance(raw, Mapping):
        values = list(raw.values())
    elif isinstance(raw, (list, tuple)):
        values = list(raw)
    else:
        return []
    return [LineItem.from_raw(entry) for entry in values]


@dataclass(frozen=True)
class Order:
    """One placed customer transaction tied to a table."""

    id: str
    table_number: str = ""
    status: str = OrderStatus.PENDING.value
    items: tuple[LineItem, ...] = ()
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    subtotal: Decimal | None = None
    tax: Decimal | None = None
    total: Decimal | None = None
    tax_percent: Decimal | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    timestamp: datetime | None = None

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any] | None) -> "Order":
        data = data or {}
        return cls(
            id=str(doc_id),
            table_number=_text(data.get("tableNumber")),
            status=_text(data.get("status")),
            items=tuple(normalize_items(data.get("items"))),
            customer_name=_text(data.get("customerName")),
            customer_phone=_text(data.get("customerPhone")),
            customer_email=_text(data.get("customerEmail")),
            subtotal=_amount(data.get("subtotal")),
            tax=_amount(data.get("tax")),
            total=_amount(data.get("total")),
            tax_percent=_amount(data.get("taxPercent")),
            created_at=coerce_timestamp(data.get("createdAt")),
            updated_at=coerce_timestamp(data.get("updatedAt")),
            timestamp=coerce_timestamp(data.get("timestamp")),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "tableNumber": self.table_number,
            "status": self.status,
            "items": [item.to_document() for item in self.items],
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerEmail": self.customer_email,
            "subtotal": _number(self.subtotal),
            "tax": _number(self.tax),
            "total": _number(self.total),
            "taxPercent": _number(self.tax_percent),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> Dict[str, Any]:
        """JSON-friendly view used by API responses and stream events."""

        doc = self.to_document()
        for key in ("createdAt", "updatedAt", "timestamp"):
            value = doc[key]
            doc[key] = value.isoformat() if value else None
        doc["id"] = self.id
        return doc


@dataclass(frozen=True)
class MenuItem:
    """A sellable good. Unavailable items are never shown to customers."""

    id: str
    name: str
    price: Decimal
    description: str = ""
    category: str = ""
    image: str = ""
    available: bool = True

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any] | None) -> "MenuItem":
        data = data or {}
        return cls(
            id=str(doc_id),
            name=_text(data.get("name")),
            price=coerce_price(data.get("price")),
            description=_text(data.get("description")),
            category=_text(data.get("category")),
            image=_text(data.get("image")),
            available=data.get("available") is not False,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "description": self.description,
            "category": self.category,
            "image": self.image,
            "available": self.available,
        }


@dataclass(frozen=True)
class Settings:
    """The singleton restaurant configuration record."""

    restaurant_name: str = DEFAULT_RESTAURANT_NAME
    tax_percent: Decimal = DEFAULT_TAX_PERCENT
    logo_url: str = ""
    contact: str = ""
    address: str = ""
    phone: str = ""

    @classmethod
    def from_document(cls, data: Mapping[str, Any] | None) -> "Settings":
        data = data or {}
        tax = data.get("taxPercent")
        rate = None
        if isinstance(tax, (int, float, Decimal)) and not isinstance(tax, bool):
            rate = _to_decimal(tax)
        return cls(
            restaurant_name=_text(data.get("restaurantName")) or DEFAULT_RESTAURANT_NAME,
            tax_percent=DEFAULT_TAX_PERCENT if rate is None else rate,
            logo_url=_text(data.get("logoURL")),
            contact=_text(data.get("contact")),
            address=_text(data.get("address")),
            phone=_text(data.get("phone")),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "restaurantName": self.restaurant_name,
            "taxPercent": float(self.tax_percent),
            "logoURL": self.logo_url,
            "contact": self.contact,
            "address": self.address,
            "phone": self.phone,
        }


class Role(str, Enum):
    STAFF = "staff"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Any) -> "Role | None":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class StaffAccount:
    """Staff profile keyed by the auth identity it belongs to."""

    id: str
    email: str
    name: str
    role: Role | None
    created_at: datetime | None = None

    @property
    def is_protected(self) -> bool:
        """Admins cannot be removed through staff management."""

        return self.role is Role.ADMIN

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any] | None) -> "StaffAccount":
        data = data or {}
        return cls(
            id=str(doc_id),
            email=_text(data.get("email")),
            name=_text(data.get("name")),
            role=Role.parse(data.get("role")),
            created_at=coerce_timestamp(data.get("createdAt")),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value if self.role else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class ActivityLogEntry:
    """Append-only audit record; written, never read back."""

    action: str
    details: Dict[str, Any] = field(default_factory=dict)
    user_id: str | None = None
    user: str | None = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "details": dict(self.details),
            "userId": self.user_id,
            "user": self.user,
        }
