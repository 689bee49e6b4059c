"""Response envelopes shared by every route and exception handler."""

from typing import Any, Dict

from fastapi.responses import JSONResponse

from ..errors import SmartCafeError


def ok(data: Any) -> Dict[str, Any]:
    return {"ok": True, "data": data}


def err(
    code: int | str,
    message: str,
    details: Dict[str, Any] | None = None,
    hint: str | None = None,
) -> Dict[str, Any]:
    """Error envelope tagged with the current request id.

    ``details`` and ``hint`` are omitted when empty.
    """
    from ..middlewares.request_id import request_id_ctx

    optional = {"details": details, "hint": hint}
    error = {"code": code, "message": message}
    error.update({key: value for key, value in optional.items() if value})
    return {"ok": False, "request_id": request_id_ctx.get(None), "error": error}


def error_response(exc: SmartCafeError) -> JSONResponse:
    """Render ``exc`` with the HTTP status of its class."""
    body = err(exc.code, exc.message, exc.details)
    return JSONResponse(body, status_code=exc.status_code)
