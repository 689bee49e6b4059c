import pathlib
import sys
import types
from datetime import datetime, timezone
from decimal import Decimal

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from smartcafe.app.domain.models import Order, Settings  # noqa: E402
from smartcafe.app.errors import BillGenerationError  # noqa: E402
from smartcafe.app.pdf import bill  # noqa: E402

NOW = datetime(2024, 5, 6, 19, 30, 5, tzinfo=timezone.utc)

ORDER = Order.from_document(
    "abcdefgh12345678",
    {
        "tableNumber": "T5",
        "customerName": "Asha",
        "status": "Served",
        "taxPercent": 5,
        "items": [
            {"name": "Pizza", "price": 299, "quantity": 1},
            {"name": "Burger", "price": 199, "quantity": 2},
        ],
    },
)


class FakeHTML:
    rendered = []

    def __init__(self, string, base_url=None):
        self.string = string
        FakeHTML.rendered.append(string)

    def write_pdf(self):
        return b"%PDF-1.7 fake"


@pytest.fixture
def fake_weasyprint(monkeypatch):
    module = types.SimpleNamespace(HTML=FakeHTML)
    real_import = bill.importlib.import_module

    def fake_import(name, *args):
        if name == "weasyprint":
            return module
        return real_import(name, *args)

    monkeypatch.setattr(bill.importlib, "import_module", fake_import)
    FakeHTML.rendered = []
    return module


def test_context_fields_and_fallbacks():
    bare = Order.from_document("xy", {"items": []})
    ctx = bill.build_bill_context(bare, Settings(), now=NOW)
    assert ctx["bill_no"] == "xy"
    assert ctx["table"] == "N/A"
    assert ctx["customer"] == "Walk-in Customer"
    assert ctx["rows"] == []
    assert ctx["placeholder"] == "No items ordered"
    assert ctx["restaurant_name"] == "Smart Café"
    assert ctx["date"] == "2024-05-06"
    assert ctx["time"] == "19:30:05"


def test_context_totals_come_from_calculator():
    settings = Settings(tax_percent=Decimal("18"))
    ctx = bill.build_bill_context(ORDER, settings, now=NOW)
    assert ctx["bill_no"] == "12345678"
    assert ctx["totals"] == {
        "subtotal": "697.00",
        "tax": "34.85",
        "total": "731.85",
        "tax_percent": "5",
    }
    assert ctx["rows"][1] == {
        "name": "Burger",
        "quantity": "2",
        "price": "199.00",
        "total": "398.00",
    }


def test_filename():
    assert bill.bill_filename(ORDER, NOW) == "Bill_12345678_T5_2024-05-06.pdf"
    assert bill.bill_filename(Order.from_document("o1", {}), NOW) == "Bill_o1_N/A_2024-05-06.pdf"


def test_html_has_conditional_header():
    settings = Settings(restaurant_name="Chai Point", address="1 Main St")
    html = bill.render_bill(ORDER, settings, fmt="html", now=NOW).decode("utf-8")
    assert "Chai Point" in html
    assert "1 Main St" in html
    assert "Phone:" not in html
    assert "#12345678" in html
    assert "Thank you for dining with us!" in html
    assert "731.85" in html
    assert "80mm" in html


def test_empty_order_placeholder():
    empty = Order.from_document("o1", {"tableNumber": "T1"})
    html = bill.render_bill(empty, Settings(), fmt="html", now=NOW).decode("utf-8")
    assert "No items ordered" in html


def test_pdf_rendering(fake_weasyprint):
    data = bill.render_bill(ORDER, Settings(), title="Order Receipt", now=NOW)
    assert data.startswith(b"%PDF")
    assert "Order Receipt" in FakeHTML.rendered[0]


def test_renderer_failure_raises(monkeypatch):
    real_import = bill.importlib.import_module

    def broken(name, *args):
        if name == "weasyprint":
            raise ImportError("no weasyprint")
        return real_import(name, *args)

    monkeypatch.setattr(bill.importlib, "import_module", broken)
    with pytest.raises(BillGenerationError):
        bill.render_bill(ORDER, Settings(), now=NOW)


def test_write_bill_is_atomic(tmp_path, fake_weasyprint, monkeypatch):
    path = bill.write_bill(ORDER, tmp_path, Settings(), now=NOW)
    assert path.name == "Bill_12345678_T5_2024-05-06.pdf"
    assert path.read_bytes().startswith(b"%PDF")

    def failing_render(*args, **kwargs):
        raise BillGenerationError("Failed to generate bill. Please try again.")

    monkeypatch.setattr(bill, "render_bill", failing_render)
    other = Order.from_document("zzzzzzzz", {"tableNumber": "T9"})
    with pytest.raises(BillGenerationError):
        bill.write_bill(other, tmp_path / "out", Settings(), now=NOW)
    assert not (tmp_path / "out").exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == [path.name]
