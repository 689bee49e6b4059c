"""Blob storage for menu images.

The production deployment keeps uploads with the hosted backend; the local
backend below saves them under ``media_dir`` and serves them from ``/media``.
"""

from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Protocol

from .errors import PersistenceError, ValidationError

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class BlobStorage(Protocol):
    def upload(self, filename: str, data: bytes, folder: str = "menu") -> str:
        """Persist ``data`` and return a durable URL."""

    def read(self, key: str) -> bytes:
        """Return raw bytes for ``key``."""


def blob_key(filename: str, folder: str = "menu", now_ms: int | None = None) -> str:
    """Return ``<folder>/<millis>_<name>`` with an unsafe-character-free name."""

    name = _UNSAFE.sub("_", Path(filename or "").name).strip("._")
    if not name:
        raise ValidationError("Please choose an image file")
    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{folder}/{stamp}_{name}"


class LocalBlobStorage:
    """Save files under ``base_dir`` and serve them from ``/media``."""

    def __init__(self, base_dir: str | Path = "media") -> None:
        self.base_dir = Path(base_dir)

    def upload(self, filename: str, data: bytes, folder: str = "menu") -> str:
        key = blob_key(filename, folder)
        path = self.base_dir / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise PersistenceError("Failed to upload image") from exc
        return self.url(key)

    def read(self, key: str) -> bytes:
        return (self.base_dir / key).read_bytes()

    def url(self, key: str) -> str:
        return f"/media/{key}"
