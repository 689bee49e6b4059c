import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Read by the log filter and the error envelope
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
logger = logging.getLogger("smartcafe.access")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an ``X-Request-ID`` and log its outcome."""

    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(req_id)
        request.state.request_id = req_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "%s %s",
                request.method,
                request.url.path,
                extra={
                    "route": request.url.path,
                    "status": response.status_code,
                    "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = req_id
        return response
