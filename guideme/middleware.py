"""
Locale prefixing and page access control for server-rendered routes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from guideme.dependencies import get_db_client
from guideme.guards import resolve_user
from guideme.platform_settings import is_maintenance
from shared import roles
from shared.locale_path import (
    get_lang_from_path,
    guess_from_accept_language,
    is_locale,
    lang_href,
    strip_lang_from_path,
)

logger = logging.getLogger(__name__)

AUTH_CALLBACK_PATHS = ("/auth/callback", "/auth/confirm", "/auth/oauth", "/auth/logout")
PUBLIC_AUTH_PAGES = ("/business/auth",)
ALWAYS_PUBLIC_PREFIXES = ("/biz",)
PROTECTED_PREFIXES = ("/dashboard", "/business", "/account")
ADMIN_PREFIX = "/admin"
SUPER_PREFIX = "/godmode"
MAINTENANCE_PATH = "/maintenance"
PASSTHROUGH_PREFIXES = ("/api", "/static", "/docs", "/redoc")
PASSTHROUGH_PATHS = ("/favicon.ico", "/robots.txt", "/sitemap.xml")


@dataclass(frozen=True)
class Decision:
    redirect_to: Optional[str] = None

    @property
    def passes(self) -> bool:
        return self.redirect_to is None


PASS = Decision()


def _starts_with_any(path: str, prefixes: tuple) -> bool:
    return any(path == p or path.startswith(p + "/") for p in prefixes)


def _with_query(path: str, query: str) -> str:
    return f"{path}?{query}" if query else path


def is_passthrough(path: str, method: str = "GET") -> bool:
    if method in ("OPTIONS", "HEAD"):
        return True
    if _starts_with_any(path, AUTH_CALLBACK_PATHS):
        return True
    if _starts_with_any(path, PASSTHROUGH_PREFIXES) or path in PASSTHROUGH_PATHS:
        return True
    # File-like paths (style.css, logo.png, openapi.json).
    return "." in path.rsplit("/", 1)[-1]


def route_decision(
    path: str,
    accept_language: Optional[str],
    user: Any,
    maintenance: bool,
    method: str = "GET",
    query: str = "",
) -> Decision:
    """Decides whether a page request passes or where it is redirected."""
    if is_passthrough(path, method):
        return PASS

    first = path.strip("/").split("/", 1)[0]
    if not is_locale(first):
        guess = guess_from_accept_language(accept_language)
        return Decision(_with_query(lang_href(guess, path), query))

    lang = get_lang_from_path(path)
    rest = strip_lang_from_path(path) or "/"

    if (
        maintenance
        and not roles.is_super_admin(user)
        and not _starts_with_any(rest, (MAINTENANCE_PATH,) + PUBLIC_AUTH_PAGES)
    ):
        return Decision(lang_href(lang, MAINTENANCE_PATH))

    if _starts_with_any(rest, ALWAYS_PUBLIC_PREFIXES + PUBLIC_AUTH_PAGES):
        return PASS

    wants_admin = _starts_with_any(rest, (ADMIN_PREFIX,))
    wants_super = _starts_with_any(rest, (SUPER_PREFIX,))
    needs_auth = wants_admin or wants_super or _starts_with_any(rest, PROTECTED_PREFIXES)
    if not needs_auth:
        return PASS

    if not user:
        params = urlencode({"redirectedFrom": _with_query(path, query)})
        return Decision(f"{lang_href(lang, '/business/auth')}?{params}")
    if wants_super and not roles.is_super_admin(user):
        return Decision(f"/{lang}?forbidden=super")
    if wants_admin and not roles.is_admin(user):
        return Decision(f"/{lang}?forbidden=admin")
    return PASS


class LocaleGateMiddleware(BaseHTTPMiddleware):
    """Applies `route_decision` to every request before it reaches a page."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if is_passthrough(path, request.method):
            return await call_next(request)

        db = get_db_client()
        decision = route_decision(
            path,
            request.headers.get("accept-language"),
            resolve_user(request, db),
            is_maintenance(db),
            method=request.method,
            query=request.url.query,
        )
        if decision.passes:
            return await call_next(request)
        return RedirectResponse(decision.redirect_to, status_code=307)
