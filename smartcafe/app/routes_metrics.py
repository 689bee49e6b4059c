# routes_metrics.py

"""Prometheus metrics and /metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

orders_created_total = Counter("orders_created_total", "Total orders created")
orders_created_total.inc(0)

order_status_changes_total = Counter(
    "order_status_changes_total", "Total order status changes", ["status"]
)
order_status_changes_total.labels(status="Pending").inc(0)

orders_deleted_total = Counter("orders_deleted_total", "Total orders deleted")
orders_deleted_total.inc(0)

bills_generated_total = Counter("bills_generated_total", "Total bills generated")
bills_generated_total.inc(0)

bill_failures_total = Counter("bill_failures_total", "Total bill generation failures")
bill_failures_total.inc(0)

stream_clients_gauge = Gauge(
    "order_stream_clients", "Connected order stream clients", ["audience"]
)
stream_clients_gauge.labels(audience="staff").set(0)
stream_clients_gauge.labels(audience="guest").set(0)

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint() -> Response:
    """Expose Prometheus metrics."""
    data = generate_latest()
    return Response(data, media_type=CONTENT_TYPE_LATEST)
