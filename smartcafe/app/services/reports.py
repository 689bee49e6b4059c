"""Sales report export for the admin console."""

from __future__ import annotations

import csv
import io
from datetime import date, datetime, timezone
from typing import Any, Iterable, Iterator, List

from ..billing.calculator import bill_for_order, format_amount
from ..domain.models import Order

HEADERS = ["OrderID", "Table", "Customer", "Subtotal", "Tax", "Total", "Status", "Timestamp"]


def sales_rows(orders: Iterable[Order], settings: Any = None) -> Iterator[List[str]]:
    """Yield one CSV row per order with freshly computed totals."""

    for order in orders:
        bill = bill_for_order(order, settings)
        yield [
            order.id,
            order.table_number,
            order.customer_name,
            format_amount(bill.subtotal),
            format_amount(bill.tax),
            format_amount(bill.total),
            order.status,
            order.timestamp.isoformat() if order.timestamp else "",
        ]


def sales_csv(orders: Iterable[Order], settings: Any = None) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(HEADERS)
    writer.writerows(sales_rows(orders, settings))
    return buffer.getvalue()


def sales_filename(today: date | datetime | None = None) -> str:
    day = today or datetime.now(timezone.utc)
    if isinstance(day, datetime):
        day = day.date()
    return f"sales_{day.isoformat()}.csv"


__all__ = ["HEADERS", "sales_csv", "sales_filename", "sales_rows"]
