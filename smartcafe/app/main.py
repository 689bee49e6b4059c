# main.py

"""FastAPI application for table ordering, the order board and billing."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings as AppConfig
from config import get_settings

from .auth import LocalAuthProvider
from .errors import SmartCafeError
from .middlewares.request_id import RequestIdMiddleware
from .obs.logging import configure_logging
from .routes_admin import router as admin_router
from .routes_auth import router as auth_router
from .routes_bills import router as bills_router
from .routes_guest import entry_router
from .routes_guest import router as guest_router
from .routes_metrics import router as metrics_router
from .routes_orders_stream import router as stream_router
from .routes_staff import router as staff_router
from .services.auth_service import seed_admin
from .services.settings_service import SettingsEditor, ensure_settings
from .storage import LocalBlobStorage
from .store import DocumentStore, SqlDocumentStore
from .utils.responses import err, error_response, ok

logger = logging.getLogger("smartcafe")


def create_app(
    config: Optional[AppConfig] = None, store: Optional[DocumentStore] = None
) -> FastAPI:
    """Build the application around ``store`` (SQL store from config by default)."""

    config = config or get_settings()
    configure_logging(config.log_level)
    store = store or SqlDocumentStore.from_url(config.database_url)

    app = FastAPI(title="Smart Café API", version="1.0.0")
    app.state.config = config
    app.state.store = store
    app.state.auth = LocalAuthProvider(
        store, config.secret_key, config.access_token_expire_minutes
    )
    app.state.storage = LocalBlobStorage(config.media_dir)

    ensure_settings(store, config.default_tax_percent)
    # Live copy of the settings document shared by all requests.
    app.state.settings_editor = SettingsEditor(store).start()
    if config.admin_email and config.admin_password:
        seed_admin(store, app.state.auth, config.admin_email, config.admin_password)

    origins = [o.strip() for o in config.allowed_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    media_dir = Path(config.media_dir)
    media_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/media", StaticFiles(directory=media_dir), name="media")

    @app.exception_handler(SmartCafeError)
    async def domain_error_handler(request: Request, exc: SmartCafeError):
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(
            level,
            exc.message,
            extra={"status": exc.status_code, "route": request.url.path},
        )
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(
            exc.detail, extra={"status": exc.status_code, "route": request.url.path}
        )
        return JSONResponse(
            err(exc.status_code, exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            err("VALIDATION", "Invalid request", {"errors": jsonable_encoder(exc.errors())}),
            status_code=422,
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error", extra={"status": 500, "route": request.url.path}
        )
        return JSONResponse(err(500, "Internal Server Error"), status_code=500)

    @app.get("/health")
    async def health() -> dict:
        return ok({"status": "ok"})

    # Static paths go before the parameterised order routes.
    app.include_router(stream_router)
    app.include_router(bills_router)
    app.include_router(admin_router)
    app.include_router(staff_router)
    app.include_router(guest_router)
    app.include_router(entry_router)
    app.include_router(auth_router)
    app.include_router(metrics_router)
    return app


app = create_app()
