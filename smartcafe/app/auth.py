# auth.py

"""Authentication provider interface, local provider and FastAPI guards.

Sign-in, session observation, sign-out, password reset dispatch and user
creation belong to an external auth provider in production. The
:class:`LocalAuthProvider` keeps credentials as argon2 hashes in the document
store and issues JWT sessions so that the service runs on its own.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel

from .domain.models import Role
from .errors import AuthError, ValidationError
from .store import SERVER_TIMESTAMP, STAFF, DocumentStore

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
AUTH_USERS = "authUsers"
MIN_PASSWORD_LENGTH = 6
RESET_LOG_SIZE = 100

ph = PasswordHasher()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/staff/login", auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated principal as reported by the provider."""

    uid: str
    email: str


@dataclass(frozen=True)
class AuthSession:
    identity: Identity
    token: str


class AuthProvider(Protocol):
    def sign_in(self, email: str, password: str) -> AuthSession:
        """Authenticate credentials, raising ``AuthError`` on failure."""

    def sign_out(self, token: str) -> None:
        """Invalidate the session behind ``token``."""

    def current_user(self, token: str) -> Optional[Identity]:
        """Return the identity of a live session or ``None``."""

    def send_password_reset(self, email: str) -> None:
        """Dispatch a password reset email."""

    def create_user(self, email: str, password: str) -> Identity:
        """Create a new credential and return its identity."""


class User(BaseModel):
    """Signed-in staff member with the role stored on their profile."""

    uid: str
    email: str
    role: Role


def _now() -> datetime:
    return datetime.now(timezone.utc)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored hash."""

    try:
        return ph.verify(hashed_password, plain_password)
    except VerifyMismatchError:
        return False
    except VerificationError as exc:  # pragma: no cover - unexpected
        logger.error("argon2 verification error: %s", exc)
        raise


class LocalAuthProvider:
    """Credential store backed by the ``authUsers`` collection."""

    def __init__(
        self, store: DocumentStore, secret_key: str, expire_minutes: int = 720
    ) -> None:
        self.store = store
        self.secret_key = secret_key
        self.expire_minutes = expire_minutes
        # jti -> exp of signed-out tokens that have not expired yet
        self._revoked: dict[str, float] = {}
        self.reset_requests: deque[str] = deque(maxlen=RESET_LOG_SIZE)

    def _find(self, email: str) -> tuple[str, dict] | None:
        wanted = email.strip().lower()
        for doc in self.store.list(AUTH_USERS):
            if str(doc.data.get("email", "")).lower() == wanted:
                return doc.id, doc.data
        return None

    def _issue(self, identity: Identity) -> str:
        expire = _now() + timedelta(minutes=self.expire_minutes)
        payload = {
            "sub": identity.uid,
            "email": identity.email,
            "jti": uuid.uuid4().hex,
            "exp": expire,
        }
        return jwt.encode(payload, self.secret_key, algorithm=ALGORITHM)

    def sign_in(self, email: str, password: str) -> AuthSession:
        found = self._find(email)
        if found is None or not verify_password(password, found[1].get("passwordHash", "")):
            raise AuthError("Invalid email or password", code="BAD_CREDENTIALS")
        identity = Identity(uid=found[0], email=str(found[1]["email"]))
        return AuthSession(identity=identity, token=self._issue(identity))

    def sign_out(self, token: str) -> None:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except jwt.PyJWTError:
            return
        now = _now().timestamp()
        self._revoked = {
            jti: exp for jti, exp in self._revoked.items() if exp > now
        }
        self._revoked[payload.get("jti", "")] = float(payload.get("exp", now))

    def current_user(self, token: str) -> Optional[Identity]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except jwt.PyJWTError:
            return None
        if payload.get("jti") in self._revoked:
            return None
        return Identity(uid=str(payload["sub"]), email=str(payload.get("email", "")))

    def send_password_reset(self, email: str) -> None:
        if self._find(email) is None:
            raise AuthError("No account found for this email", code="USER_NOT_FOUND")
        self.reset_requests.append(email.strip().lower())
        logger.info("password reset email queued")

    def create_user(self, email: str, password: str) -> Identity:
        email = email.strip()
        if "@" not in email:
            raise ValidationError("Please enter a valid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if self._find(email) is not None:
            raise ValidationError("Email already in use", code="EMAIL_EXISTS")
        uid = self.store.add(
            AUTH_USERS,
            {
                "email": email,
                "passwordHash": ph.hash(password),
                "createdAt": SERVER_TIMESTAMP,
            },
        )
        return Identity(uid=uid, email=email)


def resolve_role(store: DocumentStore, uid: str) -> Optional[Role]:
    """Read the explicit ``role`` field of the ``staff/<uid>`` profile."""

    profile = store.get(STAFF, uid)
    if not profile:
        return None
    return Role.parse(profile.get("role"))


def get_bearer_token(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def get_current_user(request: Request, token: str = Depends(get_bearer_token)) -> User:
    """Resolve the user from a bearer token or raise ``HTTPException``."""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    identity = request.app.state.auth.current_user(token)
    if identity is None:
        raise credentials_exception
    role = resolve_role(request.app.state.store, identity.uid)
    if role is None:
        raise credentials_exception
    return User(uid=identity.uid, email=identity.email, role=role)


def role_required(*roles: Role):
    """Dependency factory enforcing that the current user has one of ``roles``."""

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient privileges"
            )
        return user

    return dependency


staff_or_admin = role_required(Role.STAFF, Role.ADMIN)
admin_only = role_required(Role.ADMIN)
