import csv
import inspect
import io
import pathlib
import sys
import types
from urllib.parse import quote

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from smartcafe.app.domain.models import Order, Role  # noqa: E402
from smartcafe.app.pdf import bill  # noqa: E402
from smartcafe.app.realtime.feeds import FeedState  # noqa: E402
from smartcafe.app.realtime.sse import sse_message, state_payload  # noqa: E402
from smartcafe.app.routes_bills import content_disposition  # noqa: E402
from smartcafe.app.routes_orders_stream import notice_ttl_for, tracker_payload  # noqa: E402
from smartcafe.app.store import MENU, ORDERS, SETTINGS, SETTINGS_DOC  # noqa: E402


@pytest.fixture
def menu(store):
    store.set(MENU, "tea", {"name": "Masala Tea", "price": 100, "category": "Drinks"})
    store.set(MENU, "cake", {"name": "Cake", "price": 350, "category": "Desserts"})
    store.set(MENU, "off", {"name": "Soup", "price": 150, "available": False})
    return store


def _place(client, table="T1", items=None, name="Asha"):
    body = {
        "customer": {"name": name, "phone": "9999999999"},
        "items": items or [{"id": "tea", "quantity": 2}],
    }
    return client.post(f"/g/{table}/orders", json=body)


def test_health_and_request_id(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True, "data": {"status": "ok"}}
    assert res.headers["X-Request-ID"]

    res = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert res.headers["X-Request-ID"] == "abc-123"


def test_guest_menu_hides_unavailable_and_filters(client, menu):
    data = client.get("/g/T1/menu").json()["data"]
    assert data["table"] == "T1"
    assert {item["id"] for item in data["items"]} == {"tea", "cake"}
    assert data["categories"] == ["Desserts", "Drinks"]

    data = client.get("/g/T1/menu", params={"price_range": "low"}).json()["data"]
    assert [item["id"] for item in data["items"]] == ["tea"]
    data = client.get("/g/T1/menu", params={"search": "CAKE"}).json()["data"]
    assert [item["id"] for item in data["items"]] == ["cake"]


def test_guest_order_flow(client, menu, store):
    res = _place(client, "T3")
    assert res.status_code == 201
    order_id = res.json()["data"]["id"]

    doc = store.get(ORDERS, order_id)
    assert doc["status"] == "Pending"
    assert doc["tableNumber"] == "T3"
    assert doc["total"] == 210.0

    orders = client.get("/g/T3/orders").json()["data"]
    assert [o["id"] for o in orders] == [order_id]
    assert orders[0]["bill"]["total"] == "210.00"
    assert client.get("/g/T4/orders").json()["data"] == []

    assert client.get(f"/g/T3/orders/{order_id}").status_code == 200
    res = client.get(f"/g/T4/orders/{order_id}")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"


def test_guest_order_validation(client, menu):
    res = _place(client, items=[{"id": "off"}])
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION"
    assert _place(client, items=[{"id": "ghost"}]).status_code == 400
    assert _place(client, name="  ").status_code == 400
    res = client.post("/g/T1/orders", json={"customer": {"name": "A"}, "items": []})
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Your cart is empty!"


def test_staff_routes_require_auth(client):
    res = client.get("/api/orders")
    assert res.status_code == 401
    body = res.json()
    assert body["ok"] is False
    assert body["error"]["message"] == "Not authenticated"


def test_staff_board_and_status_change(client, menu, staff_headers):
    order_id = _place(client).json()["data"]["id"]

    board = client.get("/api/orders", headers=staff_headers).json()["data"]
    assert board["counts"]["Pending"] == 1
    assert board["orders"][0]["actions"] == ["cancel", "change_status"]

    res = client.post(
        f"/api/orders/{order_id}/status",
        json={"status": "Preparing"},
        headers=staff_headers,
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "Preparing"

    res = client.post(
        f"/api/orders/{order_id}/status", json={"status": "Eaten"}, headers=staff_headers
    )
    assert res.status_code == 400


def test_cancel_needs_confirmation(client, menu, staff_headers):
    order_id = _place(client).json()["data"]["id"]
    res = client.post(f"/api/orders/{order_id}/cancel", json={}, headers=staff_headers)
    assert res.status_code == 428
    assert res.json()["error"]["code"] == "CONFIRMATION_REQUIRED"

    res = client.post(
        f"/api/orders/{order_id}/cancel", json={"confirm": True}, headers=staff_headers
    )
    assert res.json()["data"]["status"] == "Cancelled"
    assert res.json()["data"]["actions"] == []


def test_delete_action_is_offered_to_admins_only(
    client, menu, store, staff_headers, admin_headers
):
    order_id = _place(client).json()["data"]["id"]
    store.update(ORDERS, order_id, {"status": "Completed"})

    staff_view = client.get(f"/api/orders/{order_id}", headers=staff_headers).json()["data"]
    admin_view = client.get(f"/api/orders/{order_id}", headers=admin_headers).json()["data"]
    assert staff_view["actions"] == []
    assert admin_view["actions"] == ["delete"]
    res = client.delete(f"/api/orders/{order_id}?confirm=true", headers=staff_headers)
    assert res.status_code == 403


def test_staff_cannot_use_admin_routes(client, staff_headers):
    assert client.get("/api/menu", headers=staff_headers).status_code == 403
    assert client.get("/api/settings", headers=staff_headers).status_code == 403


def test_admin_delete_orders(client, menu, store, admin_headers):
    active = _place(client).json()["data"]["id"]
    done = _place(client).json()["data"]["id"]
    store.update(ORDERS, done, {"status": "Completed"})

    res = client.delete(f"/api/orders/{active}?confirm=true", headers=admin_headers)
    assert res.status_code == 409
    res = client.delete(f"/api/orders/{done}", headers=admin_headers)
    assert res.status_code == 428

    res = client.post(
        "/api/orders/bulk-delete", json={"ids": [active, done]}, headers=admin_headers
    )
    assert res.status_code == 428
    assert res.json()["error"]["details"] == {"deletable": 1}

    res = client.post(
        "/api/orders/bulk-delete",
        json={"ids": [active, done], "confirm": True},
        headers=admin_headers,
    )
    data = res.json()["data"]
    assert (data["requested"], data["deletable"], data["deleted"]) == (2, 1, 1)
    assert store.get(ORDERS, done) is None
    assert store.get(ORDERS, active) is not None


def test_admin_menu_crud(client, admin_headers):
    res = client.post(
        "/api/menu", json={"name": "Dosa", "price": "120"}, headers=admin_headers
    )
    assert res.status_code == 201
    item = res.json()["data"]
    assert item["price"] == 120.0
    assert item["available"] is True

    res = client.patch(
        f"/api/menu/{item['id']}", json={"available": False}, headers=admin_headers
    )
    assert res.json()["data"]["available"] is False
    assert client.get("/g/T1/menu").json()["data"]["items"] == []

    res = client.post("/api/menu", json={"name": "Dosa", "price": "-1"}, headers=admin_headers)
    assert res.status_code == 400

    assert client.delete(f"/api/menu/{item['id']}", headers=admin_headers).status_code == 200
    assert client.get("/api/menu", headers=admin_headers).json()["data"] == []


def test_admin_image_upload(client, admin_headers):
    res = client.post(
        "/api/menu/images",
        files={"file": ("dosa.png", b"png-bytes", "image/png")},
        headers=admin_headers,
    )
    assert res.status_code == 201
    url = res.json()["data"]["url"]
    assert url.startswith("/media/menu/")
    assert client.get(url).content == b"png-bytes"


def test_admin_settings_update(client, admin_headers):
    res = client.put(
        "/api/settings",
        json={"restaurant_name": "Chai Point", "tax_percent": 12},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["data"]["restaurantName"] == "Chai Point"
    assert res.json()["data"]["taxPercent"] == 12.0

    res = client.put("/api/settings", json={"tax_percent": "abc"}, headers=admin_headers)
    assert res.status_code == 400
    assert client.get("/g/T1/settings").json()["data"]["taxPercent"] == 12.0


def test_admin_staff_management(client, admin_headers):
    res = client.post(
        "/api/staff",
        json={"email": "cook@cafe.test", "password": "secret1", "name": "Cook"},
        headers=admin_headers,
    )
    assert res.status_code == 201
    staff_id = res.json()["data"]["id"]
    emails = {s["email"] for s in client.get("/api/staff", headers=admin_headers).json()["data"]}
    assert emails == {"admin@cafe.test", "cook@cafe.test"}

    login = client.post(
        "/auth/staff/login", json={"email": "cook@cafe.test", "password": "secret1"}
    )
    assert login.status_code == 200
    denied = client.post(
        "/auth/admin/login", json={"email": "cook@cafe.test", "password": "secret1"}
    )
    assert denied.status_code == 401
    assert denied.json()["error"]["code"] == "ROLE_DENIED"

    assert client.delete(f"/api/staff/{staff_id}", headers=admin_headers).status_code == 200


def test_me_and_logout(client, staff_headers):
    me = client.get("/auth/me", headers=staff_headers).json()["data"]
    assert me["role"] == "staff"
    assert client.post("/auth/logout", headers=staff_headers).status_code == 200
    assert client.get("/auth/me", headers=staff_headers).status_code == 401


def test_sales_report_csv(client, menu, admin_headers):
    _place(client, "T2")
    res = client.get("/api/reports/sales.csv", headers=admin_headers)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert "sales_" in res.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(res.text)))
    assert rows[0][0] == "OrderID"
    assert rows[1][1] == "T2"
    assert rows[1][3:6] == ["200.00", "10.00", "210.00"]


def test_table_qr(client, admin_headers):
    data = client.get("/api/qr/T7", headers=admin_headers).json()["data"]
    assert data["url"] == "https://cafe.example/menu?table=T7"
    assert data["image"].startswith("https://api.qrserver.com/v1/create-qr-code/?size=300x300")

    res = client.get("/api/qr/T7/png", headers=admin_headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "image/png"


@pytest.fixture
def fake_pdf(monkeypatch):
    class FakeHTML:
        def __init__(self, string, base_url=None):
            pass

        def write_pdf(self):
            return b"%PDF-1.7"

    real_import = bill.importlib.import_module

    def fake_import(name, *args):
        if name == "weasyprint":
            return types.SimpleNamespace(HTML=FakeHTML)
        return real_import(name, *args)

    monkeypatch.setattr(bill.importlib, "import_module", fake_import)


def test_bill_html_and_pdf(client, menu, staff_headers, fake_pdf):
    order_id = _place(client, "T5").json()["data"]["id"]

    res = client.get(f"/g/T5/orders/{order_id}/bill", params={"format": "html"})
    assert res.status_code == 200
    assert "210.00" in res.text
    assert "Table No:" in res.text

    res = client.get(f"/api/orders/{order_id}/bill", headers=staff_headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert "attachment" in res.headers["content-disposition"]
    assert res.content.startswith(b"%PDF")


def test_bill_download_for_non_latin_table(client, menu, staff_headers, fake_pdf):
    order_id = _place(client, "टेबल1").json()["data"]["id"]
    res = client.get(f"/api/orders/{order_id}/bill", headers=staff_headers)
    assert res.status_code == 200
    header = res.headers["content-disposition"]
    header.encode("ascii")
    assert "filename*=UTF-8''Bill_" in header
    assert quote("टेबल1") in header


def test_content_disposition_keeps_exact_name():
    header = content_disposition("Bill_1234abcd_Café \"7\"_2024-05-06.pdf")
    assert header.startswith('attachment; filename="Bill_1234abcd_Caf_ _7__2024-05-06.pdf"')
    assert header.endswith("filename*=UTF-8''Bill_1234abcd_Caf%C3%A9%20%227%22_2024-05-06.pdf")


def test_save_bill_writes_into_bill_dir(client, menu, staff_headers, app_config, fake_pdf):
    order_id = _place(client, "T6").json()["data"]["id"]
    res = client.post(f"/api/orders/{order_id}/bill/save", headers=staff_headers)
    assert res.status_code == 201
    name = res.json()["data"]["file"]
    saved = pathlib.Path(app_config.bill_dir) / name
    assert saved.read_bytes() == b"%PDF-1.7"
    assert name.startswith(f"Bill_{order_id[-8:]}_T6_")

    assert client.post(f"/api/orders/{order_id}/bill/save").status_code == 401


def test_bill_failure_returns_error(client, menu, staff_headers, monkeypatch):
    order_id = _place(client).json()["data"]["id"]
    real_import = bill.importlib.import_module

    def broken(name, *args):
        if name == "weasyprint":
            raise OSError("cairo missing")
        return real_import(name, *args)

    monkeypatch.setattr(bill.importlib, "import_module", broken)
    res = client.get(f"/api/orders/{order_id}/bill", headers=staff_headers)
    assert res.status_code == 500
    assert res.json()["error"]["code"] == "BILL_GENERATION"


def test_metrics_endpoint(client):
    res = client.get("/metrics")
    assert res.status_code == 200
    assert "orders_created_total" in res.text
    assert "order_stream_clients" in res.text


def test_sse_helpers():
    order = Order.from_document("o1", {"tableNumber": "T1", "items": [{"price": 10}]})
    payload = state_payload(FeedState(orders=(order,)))
    assert payload["notice"] is None
    assert payload["orders"][0]["bill"]["subtotal"] == "10.00"

    message = sse_message("orders", {"n": 1}, event_id=3)
    assert message == 'event: orders\nid: 3\ndata: {"n": 1}\n\n'


def test_menu_entry_redirects_to_table(client):
    res = client.get("/menu", params={"table": "T4"}, follow_redirects=False)
    assert res.status_code == 307
    assert res.headers["location"] == "/g/T4/menu"

    res = client.get("/menu", params={"table": "  "}, follow_redirects=False)
    assert res.headers["location"] == "/g/T1/menu"
    assert client.get("/menu").json()["data"]["table"] == "T1"


def test_notice_ttl_depends_on_role(app_config):
    assert notice_ttl_for(app_config, Role.ADMIN) == app_config.notification_ttl_secs
    assert notice_ttl_for(app_config, Role.STAFF) == app_config.staff_notification_ttl_secs
    assert app_config.notification_ttl_secs < app_config.staff_notification_ttl_secs


def test_settings_changes_reach_every_reader(client, store, admin_headers):
    store.set(SETTINGS, SETTINGS_DOC, {"restaurantName": "Udupi Corner"}, merge=True)
    assert client.get("/g/T1/settings").json()["data"]["restaurantName"] == "Udupi Corner"

    client.put("/api/settings", json={"tax_percent": 18}, headers=admin_headers)
    data = client.get("/api/settings", headers=admin_headers).json()["data"]
    assert data["taxPercent"] == 18.0
    assert data["restaurantName"] == "Udupi Corner"


def test_order_status_stream_is_scoped_to_table(client, menu):
    order_id = _place(client, "T2").json()["data"]["id"]
    res = client.get(f"/g/T3/orders/{order_id}/stream")
    assert res.status_code == 404
    assert tracker_payload(order_id, "Ready") == {"id": order_id, "status": "Ready"}


def test_blocking_routes_run_in_threadpool(app):
    streaming = {
        "/api/orders/stream",
        "/g/{table}/orders/stream",
        "/g/{table}/orders/{order_id}/stream",
        "/api/menu/images",
    }
    for route in app.routes:
        endpoint = getattr(route, "endpoint", None)
        if endpoint is None or getattr(route, "path", "") in streaming:
            continue
        if route.path.startswith(("/api", "/g/", "/auth")):
            assert not inspect.iscoroutinefunction(endpoint), route.path
