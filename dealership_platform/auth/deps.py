from __future__ import annotations

import logging
from typing import Callable, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dealership_platform.config import Config
from dealership_platform.db import connect
from dealership_platform.models import Principal

from .crud import load_principal
from .security import decode_access_token

_log = logging.getLogger("dealership_platform.auth")

# auto_error=False: a missing or non-Bearer Authorization header yields None and
# we answer 401 ourselves (HTTPBearer would answer 403).
_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def get_cfg(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="server_config_missing")
    return cfg


def cookie_token(request: Request, cfg: Config) -> Optional[str]:
    cookie_name = str(cfg.AUTH_COOKIE_NAME or "dp_token")
    return request.cookies.get(cookie_name) or None


def resolve_token(cfg: Config, token: str) -> Principal:
    """Token -> Principal (stored role re-read every call). Raises 401."""
    try:
        payload = decode_access_token(token=token, secret=cfg.AUTH_JWT_SECRET)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except (jwt.InvalidTokenError, ValueError):
        raise _unauthorized("Invalid token")

    sub = payload.get("sub")
    if not sub:
        raise _unauthorized("Invalid token")

    with connect(cfg.DB_DSN) as conn:
        principal = load_principal(conn, str(sub))
    if principal is None:
        raise _unauthorized("Unauthorized")
    return principal


def get_bearer_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Principal:
    """Authenticate an API call from `Authorization: Bearer <jwt>` only.

    Resource handlers do not rely on the route guard: they may be called by
    scripts that never carry the browser cookie.
    """
    cfg = get_cfg(request)
    if credentials is None or not credentials.credentials:
        raise _unauthorized()
    return resolve_token(cfg, credentials.credentials)


def get_session_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Principal:
    """Authenticate from a Bearer token, falling back to the session cookie."""
    cfg = get_cfg(request)

    token: str | None = None
    if credentials is not None and credentials.credentials:
        token = credentials.credentials
    if not token:
        token = cookie_token(request, cfg)
    if not token:
        raise _unauthorized()
    return resolve_token(cfg, token)


def require_admin(detail: str = "Admin role required") -> Callable[..., Principal]:
    """Dependency factory: Bearer principal with the admin role, else 403 `detail`."""

    def _admin(principal: Principal = Depends(get_bearer_principal)) -> Principal:
        if not principal.is_admin:
            raise HTTPException(status_code=403, detail=detail)
        return principal

    return _admin


def principal_from_cookie(request: Request, cfg: Config) -> Optional[Principal]:
    """Best-effort principal for page navigation.

    Any failure (no cookie, bad token, unknown identity, unreachable store) means
    anonymous. Never raises.
    """
    token = cookie_token(request, cfg)
    if not token:
        return None
    try:
        return resolve_token(cfg, token)
    except HTTPException:
        return None
    except Exception as e:
        _log.warning(f"Session lookup failed, treating request as anonymous: {e}")
        return None
