"""Best-effort activity log writes.

Audit entries describe an action that already happened. Writing them must
never block or roll back that action, so failures are logged and dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..domain.models import ActivityLogEntry
from ..store import ACTIVITY_LOGS, SERVER_TIMESTAMP, DocumentStore

logger = logging.getLogger(__name__)


def log_activity(
    store: DocumentStore,
    action: str,
    details: Optional[Dict[str, Any]] = None,
    actor: Any = None,
) -> None:
    """Append an ``activityLogs`` entry for ``action`` performed by ``actor``."""

    entry = ActivityLogEntry(
        action=action,
        details=details or {},
        user_id=getattr(actor, "uid", None),
        user=getattr(actor, "email", None),
    )
    try:
        store.add(ACTIVITY_LOGS, {**entry.to_document(), "timestamp": SERVER_TIMESTAMP})
    except Exception as exc:
        logger.warning("activity log %s failed: %s", action, exc)


__all__ = ["log_activity"]
