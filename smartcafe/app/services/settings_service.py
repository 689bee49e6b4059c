"""Settings singleton: creation, validated merge saves and edit suppression."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from ..domain.models import Settings
from ..errors import ValidationError
from ..store import SERVER_TIMESTAMP, SETTINGS, SETTINGS_DOC, DocumentSnapshot, DocumentStore
from .activity_log import log_activity

logger = logging.getLogger(__name__)

_TEXT_FIELDS = {
    "restaurant_name": "restaurantName",
    "logo_url": "logoURL",
    "contact": "contact",
    "address": "address",
    "phone": "phone",
}


def ensure_settings(store: DocumentStore, default_tax_percent: float = 5) -> Settings:
    """Create the settings document with defaults when it does not exist."""

    data = store.get(SETTINGS, SETTINGS_DOC)
    if data is None:
        defaults = Settings(tax_percent=Decimal(str(default_tax_percent)))
        store.set(
            SETTINGS,
            SETTINGS_DOC,
            {**defaults.to_document(), "updatedAt": SERVER_TIMESTAMP},
        )
        logger.info("created default settings document")
        return defaults
    return Settings.from_document(data)


def load_settings(store: DocumentStore) -> Settings:
    return Settings.from_document(store.get(SETTINGS, SETTINGS_DOC))


def _parse_tax(value: Any) -> Decimal:
    if value is None or (isinstance(value, str) and not value.strip()):
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError("Please enter a valid tax percentage")
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Please enter a valid tax percentage") from None
    if not rate.is_finite() or rate < 0:
        raise ValidationError("Please enter a valid tax percentage")
    return rate


def validate_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate a partial settings edit into a store document.

    Only keys present in ``changes`` end up in the result, which keeps the
    merge write from touching anything else.
    """

    doc: Dict[str, Any] = {}
    if "restaurant_name" in changes:
        name = str(changes["restaurant_name"] or "").strip()
        if not name:
            raise ValidationError("Restaurant name cannot be empty")
        doc["restaurantName"] = name
    if "tax_percent" in changes:
        doc["taxPercent"] = float(_parse_tax(changes["tax_percent"]))
    for key, field_name in _TEXT_FIELDS.items():
        if key == "restaurant_name" or key not in changes:
            continue
        doc[field_name] = str(changes[key] or "").strip()
    unknown = set(changes) - set(_TEXT_FIELDS) - {"tax_percent"}
    if unknown:
        raise ValidationError(f"Unknown settings fields: {', '.join(sorted(unknown))}")
    return doc


def save_settings(
    store: DocumentStore, changes: Mapping[str, Any], actor: Any = None
) -> Settings:
    """Validate and merge ``changes`` into the settings document."""

    doc = validate_changes(changes)
    if not doc:
        raise ValidationError("No settings to save")
    store.set(SETTINGS, SETTINGS_DOC, {**doc, "updatedAt": SERVER_TIMESTAMP}, merge=True)
    log_activity(store, "settings_update", {"fields": sorted(doc)}, actor)
    return load_settings(store)


class SettingsEditor:
    """Local settings form kept in sync with the store.

    While an edit is in progress incoming snapshots are ignored so they do
    not clobber unsaved input; syncing resumes once the edit ends.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self.values = Settings()
        self.editing = False
        self._subscription: Any = None

    def start(self) -> "SettingsEditor":
        if self._subscription is None:
            self._subscription = self.store.subscribe_document(
                SETTINGS, SETTINGS_DOC, self.apply_snapshot
            )
        return self

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def apply_snapshot(self, snapshot: DocumentSnapshot) -> None:
        if not snapshot.exists or self.editing:
            return
        self.values = Settings.from_document(snapshot.data)

    def begin_edit(self) -> None:
        self.editing = True

    def end_edit(self, refresh: bool = True) -> None:
        self.editing = False
        if refresh:
            data: Optional[Dict[str, Any]] = self.store.get(SETTINGS, SETTINGS_DOC)
            if data is not None:
                self.values = Settings.from_document(data)

    def save(self, changes: Mapping[str, Any], actor: Any = None) -> Settings:
        self.values = save_settings(self.store, changes, actor)
        self.editing = False
        return self.values


__all__ = [
    "SettingsEditor",
    "ensure_settings",
    "load_settings",
    "save_settings",
    "validate_changes",
]
