"""Printable customer bill rendering.

The bill is rendered from the Jinja2 template ``bill_receipt.html`` and
converted to an 80 mm receipt PDF with WeasyPrint. Totals always come from
:func:`smartcafe.app.billing.bill_for_order` so the document agrees with every
other view of the same order.
"""

from __future__ import annotations

import importlib
import logging
import os
import tempfile
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..billing.calculator import bill_for_order, format_amount
from ..domain.models import DEFAULT_RESTAURANT_NAME, Order, Settings
from ..errors import BillGenerationError

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[3]
TEMPLATE_DIR = ROOT_DIR / "templates"
TEMPLATE_NAME = "bill_receipt.html"
CURRENCY = "₹"

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR), autoescape=select_autoescape()
)


def _quantity(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def bill_number(order: Order) -> str:
    return order.id[-8:]


def build_bill_context(
    order: Order,
    settings: Optional[Settings] = None,
    title: str = "Restaurant Bill",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Template context for ``order``; optional header lines are left empty."""

    settings = settings or Settings()
    now = now or datetime.now(timezone.utc)
    bill = bill_for_order(order, settings)
    rows = [
        {
            "name": item.name,
            "quantity": _quantity(item.quantity),
            "price": format_amount(item.price),
            "total": format_amount(item.line_total),
        }
        for item in order.items
    ]
    return {
        "title": title,
        "restaurant_name": settings.restaurant_name or DEFAULT_RESTAURANT_NAME,
        "logo_url": settings.logo_url,
        "address": settings.address,
        "phone": settings.phone,
        "contact": settings.contact,
        "bill_no": bill_number(order),
        "table": order.table_number or "N/A",
        "customer": order.customer_name or "Walk-in Customer",
        "customer_phone": order.customer_phone,
        "date": now.strftime("%Y-%m-%d"),
        "time": now.strftime("%H:%M:%S"),
        "rows": rows,
        "placeholder": "" if rows else "No items ordered",
        "totals": bill.rounded(),
        "currency": CURRENCY,
    }


def bill_filename(order: Order, now: Optional[datetime] = None) -> str:
    """``Bill_<last 8 of id>_<table or N/A>_<YYYY-MM-DD>.pdf``."""

    now = now or datetime.now(timezone.utc)
    table = order.table_number or "N/A"
    return f"Bill_{bill_number(order)}_{table}_{now.date().isoformat()}.pdf"


def render_bill(
    order: Order,
    settings: Optional[Settings] = None,
    title: str = "Restaurant Bill",
    fmt: Literal["pdf", "html"] = "pdf",
    now: Optional[datetime] = None,
) -> bytes:
    """Render the bill of ``order`` as PDF (default) or HTML bytes.

    Raises :class:`BillGenerationError` on any failure; no partial document is
    ever returned.
    """

    try:
        context = build_bill_context(order, settings, title, now)
        html = _env.get_template(TEMPLATE_NAME).render(**context)
        if fmt == "html":
            return html.encode("utf-8")
        weasyprint = importlib.import_module("weasyprint")
        pdf_bytes = weasyprint.HTML(string=html, base_url=str(ROOT_DIR)).write_pdf()
    except Exception as exc:
        logger.error("bill generation failed for order %s: %s", order.id, exc)
        raise BillGenerationError("Failed to generate bill. Please try again.") from exc
    if not pdf_bytes:
        raise BillGenerationError("Failed to generate bill. Please try again.")
    return pdf_bytes


def write_bill(
    order: Order,
    directory: str | Path,
    settings: Optional[Settings] = None,
    title: str = "Restaurant Bill",
    now: Optional[datetime] = None,
) -> Path:
    """Render the PDF bill into ``directory`` and return its path.

    The document is written to a temporary file first and moved into place
    only once complete.
    """

    now = now or datetime.now(timezone.utc)
    data = render_bill(order, settings, title, "pdf", now)
    target_dir = Path(directory)
    # "N/A" tables must not turn into a sub-directory.
    target = target_dir / bill_filename(order, now).replace("/", "-")
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target_dir, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise BillGenerationError("Failed to save bill. Please try again.") from exc
    return target


__all__ = ["bill_filename", "build_bill_context", "render_bill", "write_bill"]
