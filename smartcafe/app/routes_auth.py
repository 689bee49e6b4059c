# routes_auth.py

"""Email/password login for the staff and admin consoles."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from .auth import User, get_bearer_token, get_current_user
from .deps.services import get_auth, get_store
from .services import auth_service
from .store import DocumentStore
from .utils.responses import ok

router = APIRouter(prefix="/auth")


class LoginPayload(BaseModel):
    email: str
    password: str


class ResetPayload(BaseModel):
    email: str


def _token_body(session, user: User) -> dict:
    return ok(
        {
            "access_token": session.token,
            "token_type": "bearer",
            "user": user.model_dump(mode="json"),
        }
    )


@router.post("/staff/login")
def staff_login(
    payload: LoginPayload, request: Request, store: DocumentStore = Depends(get_store)
) -> dict:
    """Sign in with a staff or admin account."""

    session, user = auth_service.staff_login(
        store, get_auth(request), payload.email, payload.password
    )
    return _token_body(session, user)


@router.post("/admin/login")
def admin_login(
    payload: LoginPayload, request: Request, store: DocumentStore = Depends(get_store)
) -> dict:
    session, user = auth_service.admin_login(
        store, get_auth(request), payload.email, payload.password
    )
    return _token_body(session, user)


@router.post("/logout")
def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    user: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> dict:
    auth_service.logout(store, get_auth(request), token, user)
    return ok({"logged_out": True})


@router.post("/password-reset")
def password_reset(payload: ResetPayload, request: Request) -> dict:
    auth_service.request_password_reset(get_auth(request), payload.email)
    return ok({"sent": True})


@router.get("/me")
def me(user: User = Depends(get_current_user)) -> dict:
    return ok(user.model_dump(mode="json"))
