import pathlib
import sys
from decimal import Decimal

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from smartcafe.app.errors import ValidationError  # noqa: E402
from smartcafe.app.services import settings_service  # noqa: E402
from smartcafe.app.services.settings_service import SettingsEditor  # noqa: E402
from smartcafe.app.store import ACTIVITY_LOGS, SETTINGS, SETTINGS_DOC  # noqa: E402


def test_ensure_settings_creates_defaults_once(store):
    created = settings_service.ensure_settings(store)
    assert created.restaurant_name == "Smart Café"
    assert created.tax_percent == Decimal("5")
    data = store.get(SETTINGS, SETTINGS_DOC)
    assert data["taxPercent"] == 5
    assert data["logoURL"] == ""

    store.set(SETTINGS, SETTINGS_DOC, {"restaurantName": "Chai Point"}, merge=True)
    assert settings_service.ensure_settings(store).restaurant_name == "Chai Point"


def test_missing_document_reads_as_defaults(store):
    settings = settings_service.load_settings(store)
    assert settings.restaurant_name == "Smart Café"
    assert settings.tax_percent == Decimal("5")


def test_non_numeric_stored_tax_reads_as_default(store):
    store.set(SETTINGS, SETTINGS_DOC, {"taxPercent": "12"})
    assert settings_service.load_settings(store).tax_percent == Decimal("5")


def test_save_merges_only_provided_fields(store):
    settings_service.ensure_settings(store)
    store.set(SETTINGS, SETTINGS_DOC, {"address": "1 Main St"}, merge=True)

    saved = settings_service.save_settings(store, {"tax_percent": "18"})
    assert saved.tax_percent == Decimal("18")
    assert saved.address == "1 Main St"
    assert saved.restaurant_name == "Smart Café"
    assert store.get(SETTINGS, SETTINGS_DOC)["updatedAt"]
    actions = [doc.data["action"] for doc in store.list(ACTIVITY_LOGS)]
    assert actions == ["settings_update"]


@pytest.mark.parametrize(
    "changes",
    [
        {"restaurant_name": "   "},
        {"tax_percent": "abc"},
        {"tax_percent": -1},
        {"unknown": 1},
        {},
    ],
)
def test_invalid_changes_write_nothing(store, changes):
    settings_service.ensure_settings(store)
    before = store.get(SETTINGS, SETTINGS_DOC)
    with pytest.raises(ValidationError):
        settings_service.save_settings(store, changes)
    assert store.get(SETTINGS, SETTINGS_DOC) == before


def test_empty_tax_is_saved_as_zero(store):
    saved = settings_service.save_settings(store, {"tax_percent": ""})
    assert saved.tax_percent == Decimal("0")


def test_editor_ignores_snapshots_while_editing(store):
    settings_service.ensure_settings(store)
    editor = SettingsEditor(store).start()
    assert editor.values.restaurant_name == "Smart Café"

    editor.begin_edit()
    store.set(SETTINGS, SETTINGS_DOC, {"restaurantName": "Remote Edit"}, merge=True)
    assert editor.values.restaurant_name == "Smart Café"

    editor.end_edit()
    assert editor.values.restaurant_name == "Remote Edit"

    store.set(SETTINGS, SETTINGS_DOC, {"phone": "555"}, merge=True)
    assert editor.values.phone == "555"
    editor.stop()


def test_editor_save_stores_and_resumes_sync(store):
    editor = SettingsEditor(store).start()
    editor.begin_edit()
    saved = editor.save({"restaurant_name": "Brew Bar", "tax_percent": 12})
    assert saved.restaurant_name == "Brew Bar"
    assert not editor.editing
    assert editor.values.tax_percent == Decimal("12")
    editor.stop()
