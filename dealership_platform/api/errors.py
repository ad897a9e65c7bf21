from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dealership_platform.errors import NotFoundError, ProfileSetupError, StoreError

_log = logging.getLogger("dealership_platform.api")

PROFILE_SETUP_RETRY = "Profile setup failed. Please try again."
PROFILE_SETUP_ORPHANED = "Account created but profile setup failed. Please contact support."


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def _validation_message(exc: RequestValidationError) -> str:
    errs = exc.errors()
    if not errs:
        return "Invalid request body"
    first = errs[0]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    name = loc[-1] if loc else None
    if first.get("type") == "missing" and name:
        return f"Missing required field: {name}"
    if name:
        return f"Invalid value for field: {name}"
    return "Invalid request body"


def install_error_handlers(app: FastAPI) -> None:
    """Render every error as `{"error": message}`."""

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, _validation_message(exc))

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return error_response(404, str(exc) or "Not found")

    @app.exception_handler(ProfileSetupError)
    async def _profile_setup(request: Request, exc: ProfileSetupError) -> JSONResponse:
        return error_response(500, PROFILE_SETUP_RETRY if exc.compensated else PROFILE_SETUP_ORPHANED)

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
        _log.error(f"Database error on {request.method} {request.url.path}: {exc}")
        return error_response(500, str(exc) or "Database error")

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        _log.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(500, "An unexpected error occurred")

