"""Login, logout and password reset flows with role gating."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ..auth import AuthSession, User, resolve_role
from ..domain.models import Role
from ..errors import AuthError, ValidationError
from ..store import SERVER_TIMESTAMP, STAFF, DocumentStore
from .activity_log import log_activity

logger = logging.getLogger(__name__)

STAFF_ROLES = (Role.STAFF, Role.ADMIN)
ADMIN_ROLES = (Role.ADMIN,)


def _login(
    store: DocumentStore,
    auth: Any,
    email: str,
    password: str,
    allowed: Iterable[Role],
    denied_message: str,
) -> tuple[AuthSession, User]:
    if not (email or "").strip() or not password:
        raise ValidationError("Please enter email and password")
    session = auth.sign_in(email, password)
    role = resolve_role(store, session.identity.uid)
    if role is None or role not in tuple(allowed):
        # The credential is valid but not for this console.
        auth.sign_out(session.token)
        logger.warning("login rejected for %s: role %s", session.identity.uid, role)
        raise AuthError(denied_message, code="ROLE_DENIED")
    user = User(uid=session.identity.uid, email=session.identity.email, role=role)
    return session, user


def staff_login(store: DocumentStore, auth: Any, email: str, password: str):
    """Sign in a staff member or admin; returns ``(session, user)``."""

    return _login(
        store, auth, email, password, STAFF_ROLES, "Access denied. Staff only."
    )


def admin_login(store: DocumentStore, auth: Any, email: str, password: str):
    return _login(
        store, auth, email, password, ADMIN_ROLES, "Access denied. Admins only."
    )


def logout(store: DocumentStore, auth: Any, token: str, user: Any = None) -> None:
    auth.sign_out(token)
    if user is not None:
        log_activity(store, "staff_logout", {}, user)


def request_password_reset(auth: Any, email: str) -> None:
    if not (email or "").strip():
        raise ValidationError("Please enter your email address")
    auth.send_password_reset(email.strip())


def seed_admin(store: DocumentStore, auth: Any, email: str, password: str) -> str | None:
    """Create the first admin account when no admin profile exists yet."""

    for doc in store.list(STAFF):
        if Role.parse(doc.data.get("role")) is Role.ADMIN:
            return None
    identity = auth.create_user(email, password)
    store.set(
        STAFF,
        identity.uid,
        {
            "email": identity.email,
            "name": "Admin",
            "role": Role.ADMIN.value,
            "createdAt": SERVER_TIMESTAMP,
        },
    )
    logger.info("seeded admin account %s", identity.uid)
    return identity.uid
