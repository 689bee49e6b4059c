"""Staff account management (admin only)."""

from __future__ import annotations

import logging
from typing import Any, List

from ..domain.models import Role, StaffAccount
from ..errors import NotFound, PermissionDenied, ValidationError
from ..store import SERVER_TIMESTAMP, STAFF, DocumentStore
from .activity_log import log_activity

logger = logging.getLogger(__name__)


def list_staff(store: DocumentStore) -> List[StaffAccount]:
    return [StaffAccount.from_document(doc.id, doc.data) for doc in store.list(STAFF)]


def add_staff(
    store: DocumentStore,
    auth: Any,
    email: str,
    password: str,
    name: str,
    role: Any = Role.STAFF,
    actor: Any = None,
) -> StaffAccount:
    """Create credentials through ``auth`` and the matching ``staff/<uid>`` profile."""

    if not (email or "").strip() or not password or not (name or "").strip():
        raise ValidationError("Please fill in all fields")
    parsed = Role.parse(role.value if isinstance(role, Role) else role)
    if parsed is None:
        raise ValidationError(f"Unknown role: {role!r}")

    identity = auth.create_user(email.strip(), password)
    store.set(
        STAFF,
        identity.uid,
        {
            "email": identity.email,
            "name": name.strip(),
            "role": parsed.value,
            "createdAt": SERVER_TIMESTAMP,
        },
    )
    log_activity(
        store,
        "staff_add",
        {"staffId": identity.uid, "email": identity.email, "role": parsed.value},
        actor,
    )
    logger.info("staff account %s created with role %s", identity.uid, parsed.value)
    data = store.get(STAFF, identity.uid)
    return StaffAccount.from_document(identity.uid, data)


def delete_staff(store: DocumentStore, staff_id: str, actor: Any = None) -> None:
    """Remove a staff profile; admin profiles are protected.

    Only the profile is removed, the credential stays with the auth provider
    and can no longer pass the role check.
    """

    data = store.get(STAFF, staff_id)
    if data is None:
        raise NotFound("Staff member not found")
    account = StaffAccount.from_document(staff_id, data)
    if account.is_protected:
        raise PermissionDenied("Admin accounts cannot be deleted")
    store.delete(STAFF, staff_id)
    log_activity(store, "staff_delete", {"staffId": staff_id, "email": account.email}, actor)
