# errors.py

"""Domain exceptions shared by services and routes.

Every error carries a machine readable ``code`` and a user facing
``message``. Routes never build error bodies by hand; the exception
handlers installed in :mod:`smartcafe.app.main` translate these classes into
the standard ``err`` envelope with the matching HTTP status.
"""

from __future__ import annotations

from typing import Any, Dict


class SmartCafeError(Exception):
    """Base class for errors surfaced to the user."""

    status_code = 500
    code = "ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details


class ValidationError(SmartCafeError, ValueError):
    """Input rejected before any store call."""

    status_code = 400
    code = "VALIDATION"


class AuthError(SmartCafeError):
    """Bad credentials or a session without a usable role."""

    status_code = 401
    code = "AUTH"


class PermissionDenied(SmartCafeError):
    status_code = 403
    code = "FORBIDDEN"


class NotFound(SmartCafeError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidTransition(SmartCafeError):
    """Status change or deletion not allowed for the order's current state."""

    status_code = 409
    code = "INVALID_TRANSITION"


class ConfirmationRequired(SmartCafeError):
    """Destructive action attempted without explicit confirmation."""

    status_code = 428
    code = "CONFIRMATION_REQUIRED"


class BillGenerationError(SmartCafeError):
    status_code = 500
    code = "BILL_GENERATION"


class PersistenceError(SmartCafeError):
    """Read, write or subscription failure in the document store."""

    status_code = 502
    code = "PERSISTENCE"


__all__ = [
    "SmartCafeError",
    "ValidationError",
    "AuthError",
    "PermissionDenied",
    "NotFound",
    "InvalidTransition",
    "ConfirmationRequired",
    "BillGenerationError",
    "PersistenceError",
]
