# qr.py

"""Table QR links: the menu URL per table and its rendered QR code."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping
from urllib.parse import quote, urlencode

import qrcode

DEFAULT_TABLE = "T1"
QR_ENDPOINT = "https://api.qrserver.com/v1/create-qr-code/"


def table_menu_url(base_url: str, table: str) -> str:
    """Return ``<base>/menu?table=<table>``."""

    return f"{base_url.rstrip('/')}/menu?table={quote(str(table), safe='')}"


def table_from_query(params: Mapping[str, str], default: str = DEFAULT_TABLE) -> str:
    """Table identifier from the menu page query string."""

    table = (params.get("table") or "").strip()
    return table or default


def qr_image_url(url: str, endpoint: str = QR_ENDPOINT, size: str = "300x300") -> str:
    """URL of the public QR rendering endpoint for ``url``."""

    return f"{endpoint}?{urlencode({'size': size, 'data': url}, quote_via=quote)}"


def generate_table_qr(
    table: str, base_url: str, output_dir: str | Path = "static/qr"
) -> str:
    """Generate a PNG QR code for a table and return the file path.

    Parameters
    ----------
    table:
        Table identifier, encoded in the menu link and used as file name.
    base_url:
        Public base URL of the customer menu.
    output_dir:
        Directory where the image is stored; created when missing.
    """

    Path(output_dir).mkdir(parents=True, exist_ok=True)
    img = qrcode.make(table_menu_url(base_url, table))
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in str(table))
    file_path = Path(output_dir) / f"{safe or DEFAULT_TABLE}.png"
    img.save(file_path)
    return str(file_path)
