"""SQLAlchemy-backed document store with push subscriptions.

Documents are JSON blobs in a single ``documents`` table keyed by
``(collection, doc_id)``. Every committed write re-reads the affected
collection and pushes the complete snapshot to its subscribers, mirroring the
delivery model of the managed realtime database used in production.
Subscribers receive the current contents once when they subscribe.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime, String, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import NotFound, PersistenceError
from .base import (
    SERVER_TIMESTAMP,
    DocumentCallback,
    DocumentSnapshot,
    ErrorCallback,
    SnapshotCallback,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


class Document(Base):
    """A single JSON document within a named collection."""

    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


def _encode(value: Any, now: datetime) -> Any:
    """Convert ``value`` into JSON-storable primitives."""

    if value is SERVER_TIMESTAMP:
        return now.isoformat()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {str(k): _encode(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v, now) for v in value]
    return value


class _Listener:
    def __init__(
        self,
        registry: "SqlDocumentStore",
        key: tuple[str, Optional[str]],
        on_snapshot: Callable[[Any], None],
        on_error: ErrorCallback | None,
    ) -> None:
        self._registry = registry
        self.key = key
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._registry._remove_listener(self)


def create_sql_engine(url: str) -> Engine:
    """Return an engine for ``url``; in-memory SQLite shares one connection."""

    if url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in {"sqlite://", "sqlite:///:memory:"}:
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


class SqlDocumentStore:
    """Implementation of :class:`~smartcafe.app.store.base.DocumentStore`."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        Base.metadata.create_all(bind=engine)
        self._lock = threading.RLock()
        self._listeners: Dict[tuple[str, Optional[str]], List[_Listener]] = {}

    @classmethod
    def from_url(cls, url: str) -> "SqlDocumentStore":
        return cls(create_sql_engine(url))

    # Reads

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            with self.SessionLocal() as session:
                row = session.get(Document, (collection, str(doc_id)))
                return dict(row.data) if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read {collection}/{doc_id}") from exc

    def list(self, collection: str) -> List[DocumentSnapshot]:
        try:
            with self.SessionLocal() as session:
                rows = session.scalars(
                    select(Document)
                    .where(Document.collection == collection)
                    .order_by(Document.doc_id)
                ).all()
                return [DocumentSnapshot(id=r.doc_id, data=dict(r.data)) for r in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read {collection}") from exc

    # Writes

    def set(
        self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        now = datetime.now(timezone.utc)
        encoded = _encode(data, now)
        try:
            with self.SessionLocal() as session:
                row = session.get(Document, (collection, str(doc_id)))
                if row is None:
                    session.add(
                        Document(collection=collection, doc_id=str(doc_id), data=encoded)
                    )
                elif merge:
                    row.data = {**row.data, **encoded}
                else:
                    row.data = encoded
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not write {collection}/{doc_id}") from exc
        self._notify(collection, str(doc_id))

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        encoded = _encode(data, now)
        try:
            with self.SessionLocal() as session:
                row = session.get(Document, (collection, str(doc_id)))
                if row is None:
                    raise NotFound(f"No document {collection}/{doc_id}")
                row.data = {**row.data, **encoded}
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not update {collection}/{doc_id}") from exc
        self._notify(collection, str(doc_id))

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            with self.SessionLocal() as session:
                row = session.get(Document, (collection, str(doc_id)))
                if row is not None:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete {collection}/{doc_id}") from exc
        self._notify(collection, str(doc_id))

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(collection, doc_id, data)
        return doc_id

    # Subscriptions

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> _Listener:
        listener = _Listener(self, (collection, None), on_snapshot, on_error)
        with self._lock:
            self._listeners.setdefault(listener.key, []).append(listener)
        self._deliver(listener)
        return listener

    def subscribe_document(
        self,
        collection: str,
        doc_id: str,
        on_snapshot: DocumentCallback,
        on_error: ErrorCallback | None = None,
    ) -> _Listener:
        listener = _Listener(self, (collection, str(doc_id)), on_snapshot, on_error)
        with self._lock:
            self._listeners.setdefault(listener.key, []).append(listener)
        self._deliver(listener)
        return listener

    def _remove_listener(self, listener: _Listener) -> None:
        with self._lock:
            bucket = self._listeners.get(listener.key, [])
            if listener in bucket:
                bucket.remove(listener)

    def _notify(self, collection: str, doc_id: str) -> None:
        with self._lock:
            targets = list(self._listeners.get((collection, None), []))
            targets += self._listeners.get((collection, doc_id), [])
        for listener in targets:
            self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        if not listener.active:
            return
        collection, doc_id = listener.key
        try:
            if doc_id is None:
                payload: Any = self.list(collection)
            else:
                data = self.get(collection, doc_id)
                payload = DocumentSnapshot(
                    id=doc_id, data=data or {}, exists=data is not None
                )
        except PersistenceError as exc:
            if listener.on_error is not None:
                listener.on_error(exc)
            else:
                logger.error("subscription read failed for %s: %s", collection, exc)
            return
        try:
            listener.on_snapshot(payload)
        except Exception:
            logger.exception("snapshot listener for %s raised", collection)


__all__ = ["Document", "SqlDocumentStore", "create_sql_engine"]
