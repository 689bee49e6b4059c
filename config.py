# config.py

"""Service configuration.

Defaults live on :class:`Settings`; ``config.json`` next to this file
supplies deployment values and environment variables (or ``.env``) win over
both. :func:`get_settings` builds the object once per process.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE = Path(__file__).with_name("config.json")


class Settings(BaseSettings):
    """Runtime settings for the API, the order feeds and bill output."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Storage and auth
    database_url: str = "sqlite:///./smartcafe.db"
    secret_key: str = "change-me"
    access_token_expire_minutes: int = 60 * 12
    admin_email: str | None = None
    admin_password: str | None = None

    # Files
    media_dir: str = "media"
    bill_dir: str = "bills"

    # Table links
    public_base_url: str = "http://localhost:5173"
    qr_endpoint: str = "https://api.qrserver.com/v1/create-qr-code/"
    qr_size: str = "300x300"
    default_table: str = "T1"

    # Orders
    default_tax_percent: float = 5.0
    notification_ttl_secs: float = 3.0
    staff_notification_ttl_secs: float = 5.0

    log_level: str = "INFO"
    allowed_origins: str = "*"


def _json_values(path: Path = CONFIG_FILE) -> Dict[str, Any]:
    if not path.exists():
        return {}
    return json.loads(path.read_text(encoding="utf-8"))


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings; call ``cache_clear()`` after env changes."""

    values = _json_values()
    for key, value in os.environ.items():
        name = key.lower()
        if name in Settings.model_fields:
            values[name] = value
    return Settings(**values)
