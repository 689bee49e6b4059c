"""Interface of the document database the application is built on.

The production backend is a managed realtime document database. The
application only depends on the :class:`DocumentStore` protocol below; see
:mod:`smartcafe.app.store.sql` for the bundled SQLAlchemy implementation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol


class _ServerTimestamp:
    """Sentinel replaced by the store with the commit instant."""

    _instance: "_ServerTimestamp | None" = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class DocumentSnapshot:
    """One document as delivered by a read or a subscription."""

    id: str
    data: Dict[str, Any] = field(default_factory=dict)
    exists: bool = True


SnapshotCallback = Callable[[List[DocumentSnapshot]], None]
DocumentCallback = Callable[[DocumentSnapshot], None]
ErrorCallback = Callable[[Exception], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None:
        """Stop delivering snapshots to the callback."""


class DocumentStore(Protocol):
    """Minimal protocol implemented by document store backends."""

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document data or ``None`` when absent."""

    def set(
        self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        """Create or replace a document; ``merge`` keeps untouched fields."""

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Partially update an existing document, raising ``NotFound`` if absent."""

    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document permanently."""

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a server assigned id and return the id."""

    def list(self, collection: str) -> List[DocumentSnapshot]:
        """Return every document of ``collection``."""

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Push the full collection to ``on_snapshot`` now and after each change."""

    def subscribe_document(
        self,
        collection: str,
        doc_id: str,
        on_snapshot: DocumentCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Push one document to ``on_snapshot`` now and after each change."""


__all__ = [
    "SERVER_TIMESTAMP",
    "DocumentSnapshot",
    "DocumentStore",
    "Subscription",
    "SnapshotCallback",
    "DocumentCallback",
    "ErrorCallback",
]
