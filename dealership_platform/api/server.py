from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from dealership_platform import __version__
from dealership_platform.auth import get_bearer_principal, get_session_principal, require_admin
from dealership_platform.auth.crud import (
    bootstrap_admin_if_needed,
    fetch_user_payload,
    load_principal,
    register_account,
    touch_last_login,
    verify_identity_credentials,
)
from dealership_platform.auth.deps import get_cfg
from dealership_platform.auth.security import create_access_token
from dealership_platform.browse import (
    BROWSE_PAGE_SIZE,
    DASHBOARD_PAGE_SIZE,
    BrowseFilters,
    count_active_filters,
    facets,
    filter_cars,
    filter_inquiries,
    filter_listed_cars,
    paginate,
    sort_cars,
)
from dealership_platform.catalog import bookmarks as bookmark_store
from dealership_platform.catalog import cars as car_store
from dealership_platform.catalog import inquiries as inquiry_store
from dealership_platform.config import Config, configure_logging, load_config
from dealership_platform.db import connect, init_db
from dealership_platform.errors import IdentityError
from dealership_platform.models import Principal
from dealership_platform.storage import IncomingFile, LocalObjectStore, upload_batch
from dealership_platform.util.validation import first_missing_field

from .errors import install_error_handlers
from .middleware import RouteGuardMiddleware

_log = logging.getLogger("dealership_platform.api")


def _debug(msg: str) -> None:
    _log.info(msg)


router = APIRouter(prefix="/api")


async def json_body(request: Request) -> Dict[str, Any]:
    """JSON object body, parsed after the auth dependencies have run."""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid request body")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid request body")
    return payload


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(e))


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Auth
# -----------------------------


def _cookie_secure(cfg: Config) -> bool:
    """Return whether the session cookie should be marked Secure."""
    samesite = str(cfg.AUTH_COOKIE_SAMESITE or "lax").lower()
    # Browsers require Secure when SameSite=None
    if samesite == "none":
        return True
    return bool(cfg.AUTH_COOKIE_SECURE)


def _set_auth_cookie(response: Response, *, token: str, cfg: Config) -> None:
    response.set_cookie(
        key=str(cfg.AUTH_COOKIE_NAME or "dp_token"),
        value=str(token),
        httponly=True,
        samesite=str(cfg.AUTH_COOKIE_SAMESITE or "lax").lower(),
        secure=_cookie_secure(cfg),
        max_age=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES) * 60,
        path=str(cfg.AUTH_COOKIE_PATH or "/"),
        domain=cfg.AUTH_COOKIE_DOMAIN,
    )


def _clear_auth_cookie(response: Response, cfg: Config) -> None:
    response.delete_cookie(
        key=str(cfg.AUTH_COOKIE_NAME or "dp_token"),
        path=str(cfg.AUTH_COOKIE_PATH or "/"),
        domain=cfg.AUTH_COOKIE_DOMAIN,
    )


class LoginRequest(BaseModel):
    email: str
    password: str


SIGNUP_REQUIRED = ("firstName", "lastName", "email", "contactNumber", "password")


@router.post("/auth/signup")
def auth_signup(payload: Dict[str, Any] = Depends(json_body), cfg: Config = Depends(get_cfg)) -> Dict[str, Any]:
    """Create identity + profile. Does not open a session."""
    missing = first_missing_field(payload, SIGNUP_REQUIRED)
    if missing is not None:
        raise HTTPException(status_code=400, detail=f"Missing required field: {missing}")

    try:
        identity = register_account(
            cfg,
            email=str(payload["email"]),
            password=str(payload["password"]),
            first_name=str(payload["firstName"]).strip(),
            middle_name=(str(payload.get("middleName") or "").strip() or None),
            last_name=str(payload["lastName"]).strip(),
            contact_number=str(payload["contactNumber"]).strip(),
        )
    except IdentityError as e:
        _log.info(f"Signup rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    _debug(f"New account {identity['id']} ({identity['email']})")
    return {"message": "Account created successfully", "user": identity}


@router.post("/auth/login")
def auth_login(payload: LoginRequest, response: Response, cfg: Config = Depends(get_cfg)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = verify_identity_credentials(conn, payload.email, payload.password)
        if row is None:
            raise HTTPException(status_code=401, detail="Invalid login credentials")

        identity_id = str(row["identity_id"])
        touch_last_login(conn, identity_id)
        principal = load_principal(conn, identity_id)
        if principal is None:
            raise HTTPException(status_code=401, detail="Invalid login credentials")
        user = fetch_user_payload(conn, principal)

    token = create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=principal.user_id,
        email=principal.email,
        role=principal.role,
        expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
    )
    _set_auth_cookie(response, token=token, cfg=cfg)
    return {"access_token": token, "token_type": "bearer", "user": user}


@router.post("/auth/logout")
def auth_logout(response: Response, cfg: Config = Depends(get_cfg)) -> Dict[str, Any]:
    """Clear the browser session cookie."""
    _clear_auth_cookie(response, cfg)
    return {"message": "Logged out"}


@router.get("/auth/me")
def auth_me(
    principal: Principal = Depends(get_session_principal),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return {"user": fetch_user_payload(conn, principal)}


# -----------------------------
# Cars (admin)
# -----------------------------


@router.post("/cars", status_code=201)
def create_car(
    principal: Principal = Depends(require_admin("Only admins can add cars")),
    payload: Dict[str, Any] = Depends(json_body),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    try:
        values = car_store.validate_car_payload(payload)
    except ValueError as e:
        raise _bad_request(e)

    with connect(cfg.DB_DSN) as conn:
        car = car_store.insert_car(conn, values, created_by=principal.user_id)
    _debug(f"Car {car['id']} ({car['stock_number']}) added by {principal.user_id}")
    return {"message": "Car added successfully", "car": car}


@router.get("/cars/list")
def list_cars(
    q: Optional[str] = None,
    status: Optional[str] = None,
    page: Optional[int] = Query(None, ge=1),
    _admin: Principal = Depends(require_admin("Only admins can view all cars")),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    """All listings, newest first. `q`/`status`/`page` drive the dashboard table."""
    with connect(cfg.DB_DSN) as conn:
        cars = car_store.list_cars(conn)

    cars = filter_listed_cars(cars, search=q, status=status)
    if page is None:
        return {"cars": cars}

    p = paginate(cars, page, DASHBOARD_PAGE_SIZE)
    return {
        "cars": p.items,
        "page": p.page,
        "page_size": p.page_size,
        "total": p.total,
        "total_pages": p.total_pages,
    }


@router.get("/cars/{car_id}")
def get_car(
    car_id: str,
    _admin: Principal = Depends(require_admin("Only admins can view car details")),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return {"car": car_store.get_car(conn, car_id)}


@router.patch("/cars/{car_id}")
def update_car(
    car_id: str,
    _admin: Principal = Depends(require_admin("Only admins can update car details")),
    payload: Dict[str, Any] = Depends(json_body),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    try:
        changes = car_store.validate_car_payload(payload, partial=True)
    except ValueError as e:
        raise _bad_request(e)

    with connect(cfg.DB_DSN) as conn:
        car = car_store.update_car(conn, car_id, changes)
    return {"message": "Car updated successfully", "car": car}


@router.delete("/cars/{car_id}")
def delete_car(
    car_id: str,
    _admin: Principal = Depends(require_admin("Only admins can delete cars")),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        car_store.delete_car(conn, car_id)
    _debug(f"Car {car_id} deleted")
    return {"message": "Car deleted successfully"}


# -----------------------------
# Browse (public)
# -----------------------------


@router.get("/browse")
def browse_cars(
    request: Request,
    page: int = Query(1, ge=1),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    """Public catalog: filters and sort_by come from the query string."""
    filters = BrowseFilters.from_mapping(request.query_params)

    with connect(cfg.DB_DSN) as conn:
        cars = car_store.list_cars(conn)

    try:
        matched = sort_cars(filter_cars(cars, filters), filters.sort_by)
    except ValueError as e:
        raise _bad_request(e)

    p = paginate(matched, page, BROWSE_PAGE_SIZE)
    return {
        "cars": p.items,
        "page": p.page,
        "page_size": p.page_size,
        "total": p.total,
        "total_pages": p.total_pages,
        "facets": facets(cars),
        "active_filters": count_active_filters(filters),
    }


@router.get("/browse/{car_id}")
def browse_car(car_id: str, cfg: Config = Depends(get_cfg)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return {"car": car_store.get_car(conn, car_id)}


# -----------------------------
# Inquiries
# -----------------------------


@router.post("/inquiries", status_code=201)
def create_inquiry(
    principal: Principal = Depends(get_bearer_principal),
    payload: Dict[str, Any] = Depends(json_body),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    try:
        values = inquiry_store.validate_inquiry_payload(payload)
    except ValueError as e:
        raise _bad_request(e)

    with connect(cfg.DB_DSN) as conn:
        inquiry = inquiry_store.insert_inquiry(conn, values, user_id=principal.user_id)
    return {"message": "Inquiry submitted successfully", "inquiry": inquiry}


@router.get("/inquiries")
def list_inquiries(
    q: Optional[str] = None,
    status: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    page: Optional[int] = Query(None, ge=1),
    principal: Principal = Depends(get_bearer_principal),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    """Admins see every inquiry; everyone else only their own."""
    owner_id = None if principal.is_admin else principal.user_id
    with connect(cfg.DB_DSN) as conn:
        rows = inquiry_store.list_inquiries(conn, owner_id=owner_id)

    try:
        rows = filter_inquiries(rows, search=q, status=status, date_from=date_from, date_to=date_to)
    except ValueError as e:
        raise _bad_request(e)

    if page is None:
        return {"inquiries": rows}

    p = paginate(rows, page, DASHBOARD_PAGE_SIZE)
    return {
        "inquiries": p.items,
        "page": p.page,
        "page_size": p.page_size,
        "total": p.total,
        "total_pages": p.total_pages,
    }


@router.get("/inquiries/{inquiry_id}")
def get_inquiry(
    inquiry_id: str,
    principal: Principal = Depends(get_bearer_principal),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    owner_id = None if principal.is_admin else principal.user_id
    with connect(cfg.DB_DSN) as conn:
        return {"inquiry": inquiry_store.get_inquiry(conn, inquiry_id, owner_id=owner_id)}


@router.patch("/inquiries/{inquiry_id}")
def update_inquiry(
    inquiry_id: str,
    _admin: Principal = Depends(require_admin("Only admins can update inquiry status")),
    payload: Dict[str, Any] = Depends(json_body),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    try:
        status = inquiry_store.validate_status(payload.get("status"))
    except ValueError as e:
        raise _bad_request(e)

    with connect(cfg.DB_DSN) as conn:
        inquiry = inquiry_store.update_inquiry_status(conn, inquiry_id, status)
    return {"message": "Status updated successfully", "inquiry": inquiry}


# -----------------------------
# Bookmarks
# -----------------------------


@router.get("/bookmarks")
def list_bookmarks(
    principal: Principal = Depends(get_session_principal),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        cars = bookmark_store.list_bookmarked_cars(conn, user_id=principal.user_id)
    return {"car_ids": [c["id"] for c in cars], "cars": cars}


@router.post("/bookmarks", status_code=201)
def add_bookmark(
    principal: Principal = Depends(get_session_principal),
    payload: Dict[str, Any] = Depends(json_body),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    if first_missing_field(payload, ("car_id",)) is not None:
        raise HTTPException(status_code=400, detail="Missing required field: car_id")
    car_id = str(payload["car_id"]).strip()

    with connect(cfg.DB_DSN) as conn:
        car_store.get_car(conn, car_id)
        created = bookmark_store.add_bookmark(conn, user_id=principal.user_id, car_id=car_id)
    return {"message": "Bookmark added" if created else "Already bookmarked", "car_id": car_id}


@router.delete("/bookmarks/{car_id}")
def remove_bookmark(
    car_id: str,
    principal: Principal = Depends(get_session_principal),
    cfg: Config = Depends(get_cfg),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        bookmark_store.remove_bookmark(conn, user_id=principal.user_id, car_id=car_id)
    return {"message": "Bookmark removed", "car_id": car_id}


# -----------------------------
# Upload
# -----------------------------


@router.post("/upload")
async def upload_images(request: Request, principal: Principal = Depends(get_session_principal)) -> Any:
    """Multipart upload (field `files`). Partial success is still a 200."""
    cfg = get_cfg(request)
    store = LocalObjectStore.from_config(cfg)

    form = await request.form()
    uploads: List[UploadFile] = [f for f in form.getlist("files") if isinstance(f, UploadFile)]
    if not uploads:
        raise HTTPException(status_code=400, detail="No files provided")

    incoming: List[IncomingFile] = []
    for f in uploads:
        # One byte past the limit is enough for the store to reject it.
        data = await f.read(store.max_bytes + 1)
        incoming.append(IncomingFile(filename=f.filename or "file", content_type=f.content_type, data=data))

    result = await run_in_threadpool(upload_batch, store, owner_id=principal.user_id, files=incoming)
    if result.all_failed:
        return JSONResponse(status_code=500, content={"error": "All uploads failed", "details": result.errors})

    return {"message": "Upload successful", "urls": result.urls, "errors": result.errors}


# -----------------------------
# App factory
# -----------------------------


def create_app(cfg: Config | None = None) -> FastAPI:
    cfg = cfg or load_config()

    app = FastAPI(title="Dealership Platform", version=__version__)
    app.state.cfg = cfg

    # Added first so it runs inside CORS.
    app.add_middleware(RouteGuardMiddleware)

    # CORS is mainly needed for local development (frontend dev server -> API on :8000).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    install_error_handlers(app)
    app.include_router(router)

    media_url = str(cfg.PUBLIC_MEDIA_URL or "").rstrip("/")
    if media_url.startswith("/"):
        app.mount(media_url, StaticFiles(directory=cfg.STORAGE_DIR, check_dir=False), name="media")

    if cfg.FRONTEND_DIR:
        app.mount("/", StaticFiles(directory=cfg.FRONTEND_DIR, html=True, check_dir=False), name="frontend")

    @app.on_event("startup")
    def _on_startup() -> None:
        configure_logging(cfg)
        os.makedirs(cfg.STORAGE_DIR, exist_ok=True)

        # Ensure schema exists.
        init_db(cfg.DB_DSN)

        # Bootstrap first admin if needed (only when no identity exists)
        boot = bootstrap_admin_if_needed(cfg)
        if boot:
            _debug(f"Bootstrapped initial admin: email={boot.get('email')} role={boot.get('role')}")

    return app


app = create_app()


def main() -> None:
    """Console entry point: serve the module-level app with uvicorn."""
    cfg = app.state.cfg
    uvicorn.run(app, host=cfg.API_HOST, port=cfg.API_PORT, log_level=str(cfg.LOG_LEVEL).lower())
