"""Page-navigation guard.

Runs before page routes only; everything under /api enforces its own auth.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from dealership_platform.auth.deps import principal_from_cookie
from dealership_platform.models import Principal

_log = logging.getLogger("dealership_platform.guard")

AUTH_PAGES = ("/login", "/signup")
PRINCIPAL_PREFIXES = ("/home", "/car")
ADMIN_PREFIXES = ("/dashboard",)

_EXCLUDED_PREFIXES = ("/api", "/static", "/media")
_EXCLUDED_PATHS = ("/favicon.ico",)
_IMAGE_EXTENSIONS = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico")

AUTH_PAGE = "auth"
PRINCIPAL_REQUIRED = "principal"
ADMIN_REQUIRED = "admin"
PUBLIC = "public"


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_excluded(path: str) -> bool:
    if path in _EXCLUDED_PATHS:
        return True
    if any(_under(path, p) for p in _EXCLUDED_PREFIXES):
        return True
    return path.lower().endswith(_IMAGE_EXTENSIONS)


def classify_path(path: str) -> str:
    if path in AUTH_PAGES:
        return AUTH_PAGE
    if any(_under(path, p) for p in ADMIN_PREFIXES):
        return ADMIN_REQUIRED
    if any(_under(path, p) for p in PRINCIPAL_PREFIXES):
        return PRINCIPAL_REQUIRED
    return PUBLIC


def decide(principal: Optional[Principal], target: str) -> Optional[str]:
    """Return the redirect location for this navigation, or None to let it through."""
    if principal is None:
        if target in (PRINCIPAL_REQUIRED, ADMIN_REQUIRED):
            return "/login"
        return None
    if target == AUTH_PAGE:
        return "/dashboard" if principal.is_admin else "/home"
    if target == ADMIN_REQUIRED and not principal.is_admin:
        return "/home"
    return None


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirect page navigations based on the session cookie and the stored role."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if is_excluded(path):
            return await call_next(request)

        cfg = request.app.state.cfg
        principal = await run_in_threadpool(principal_from_cookie, request, cfg)
        location = decide(principal, classify_path(path))
        if location is None:
            return await call_next(request)

        _log.debug(f"Redirect {path} -> {location} (principal={principal.user_id if principal else 'anonymous'})")
        return RedirectResponse(url=location, status_code=307)
