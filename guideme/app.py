"""
FastAPI application entry point for Guide Me ABC.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from guideme import admin_routes, auth_routes, billing, pages, routes
from guideme.config import (
    assert_no_public_secrets,
    assert_production_secrets,
    get_settings,
)
from guideme.db import DbConflictError, DbError, DbNotFoundError
from guideme.middleware import LocaleGateMiddleware

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


async def db_error_handler(request: Request, exc: DbError) -> JSONResponse:
    if isinstance(exc, DbConflictError):
        return JSONResponse({"detail": str(exc) or "Conflict"}, status_code=409)
    if isinstance(exc, DbNotFoundError):
        return JSONResponse({"detail": str(exc) or "Not found"}, status_code=404)
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"detail": "Database error"}, status_code=500)


def create_app() -> FastAPI:
    assert_no_public_secrets()
    settings = get_settings()
    assert_production_secrets(settings)
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Guide Me ABC", version="0.1.0")
    app.add_exception_handler(DbError, db_error_handler)

    # The session middleware is added last so it wraps the locale gate.
    app.add_middleware(LocaleGateMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=60 * 60 * 24 * 7,  # 7 days
        same_site="lax",
        https_only=settings.site_url.startswith("https://"),
    )

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    app.include_router(routes.router, prefix=settings.api_prefix)
    app.include_router(admin_routes.router, prefix=settings.api_prefix)
    app.include_router(auth_routes.router, prefix=settings.api_prefix)
    app.include_router(billing.router, prefix=settings.api_prefix)
    app.include_router(auth_routes.callback_router)
    app.include_router(pages.router)
    return app


app = create_app()
