from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from dealership_platform.config import Config
from dealership_platform.db import connect, is_unique_violation
from dealership_platform.errors import IdentityError, ProfileSetupError, StoreError
from dealership_platform.models import ROLE_ADMIN, ROLE_USER, ROLES, Principal
from dealership_platform.util.time import utcnow_iso
from dealership_platform.util.validation import is_valid_email, normalize_email

from .security import MIN_PASSWORD_LENGTH, hash_password, verify_password

_log = logging.getLogger("dealership_platform.auth")


# -----------------------------
# Identity provider
# -----------------------------


def get_identity_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM auth_identities WHERE email=?",
        (e,),
    ).fetchone()


def create_identity(conn: Any, *, email: str, password: str) -> Dict[str, Any]:
    """Create login credentials. Raises IdentityError with a user-facing message."""
    e = normalize_email(email)
    if not is_valid_email(e):
        raise IdentityError("Unable to validate email address: invalid format")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise IdentityError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.")

    if get_identity_by_email(conn, e) is not None:
        raise IdentityError("User already registered")

    identity_id = str(uuid.uuid4())
    now = utcnow_iso()
    try:
        conn.execute(
            """
            INSERT INTO auth_identities (identity_id, email, password_hash, is_active, created_at, updated_at)
            VALUES (?,?,?,?,?,?)
            """,
            (identity_id, e, hash_password(password), 1, now, now),
        )
    except Exception as exc:
        # A concurrent signup took the email between the lookup and the insert.
        if is_unique_violation(exc):
            raise IdentityError("User already registered") from exc
        raise
    return {"id": identity_id, "email": e, "created_at": now}


def delete_identity(conn: Any, identity_id: str) -> int:
    cur = conn.execute("DELETE FROM auth_identities WHERE identity_id=?", (str(identity_id),))
    return int(cur.rowcount or 0)


def verify_identity_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    row = get_identity_by_email(conn, email)
    if row is None:
        return None
    if int(row["is_active"] or 0) != 1:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def touch_last_login(conn: Any, identity_id: str) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE auth_identities SET last_login_at=?, updated_at=? WHERE identity_id=?",
        (now, now, str(identity_id)),
    )


# -----------------------------
# Profiles
# -----------------------------


def insert_profile(
    conn: Any,
    *,
    user_id: str,
    first_name: str,
    last_name: str,
    email: str,
    contact_number: str,
    middle_name: str | None = None,
    role: str = ROLE_USER,
) -> Dict[str, Any]:
    if role not in ROLES:
        raise ValueError("invalid_role")
    now = utcnow_iso()
    conn.execute(
        """
        INSERT INTO users (user_id, first_name, middle_name, last_name, email, contact_number, role, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?,?,?)
        """,
        (
            str(user_id),
            first_name,
            middle_name or None,
            last_name,
            normalize_email(email),
            contact_number,
            role,
            now,
            now,
        ),
    )
    row = get_profile(conn, user_id)
    assert row is not None
    return dict(row)


def get_profile(conn: Any, user_id: str) -> Optional[Any]:
    return conn.execute("SELECT * FROM users WHERE user_id=?", (str(user_id),)).fetchone()


def load_principal(conn: Any, user_id: str) -> Optional[Principal]:
    """Resolve an identity id to a Principal with its stored role.

    Inactive or unknown identities resolve to None. An identity without a
    profile row is a regular user.
    """
    row = conn.execute(
        """
        SELECT a.identity_id, a.email, a.is_active, u.role
        FROM auth_identities a
        LEFT JOIN users u ON u.user_id = a.identity_id
        WHERE a.identity_id=?
        """,
        (str(user_id),),
    ).fetchone()
    if row is None:
        return None
    if int(row["is_active"] or 0) != 1:
        return None
    return Principal(
        user_id=str(row["identity_id"]),
        email=str(row["email"]),
        role=str(row["role"] or ROLE_USER),
    )


def fetch_user_payload(conn: Any, principal: Principal) -> Dict[str, Any]:
    """User payload returned by /auth/login and /auth/me."""
    profile = get_profile(conn, principal.user_id)
    d: Dict[str, Any] = dict(profile) if profile is not None else {}
    d.update(
        {
            "id": principal.user_id,
            "email": principal.email,
            "role": principal.role,
            "is_admin": principal.is_admin,
        }
    )
    d.pop("user_id", None)
    return d


# -----------------------------
# Account creation
# -----------------------------


def register_account(
    cfg: Config,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    contact_number: str,
    middle_name: str | None = None,
) -> Dict[str, Any]:
    """Two-step signup: identity first, then the profile row.

    Each step is its own transaction, like an external identity provider
    followed by a database insert. If the profile insert fails, the identity is
    deleted again; ProfileSetupError reports whether that worked.
    """
    with connect(cfg.DB_DSN) as conn:
        identity = create_identity(conn, email=email, password=password)

    try:
        with connect(cfg.DB_DSN) as conn:
            insert_profile(
                conn,
                user_id=identity["id"],
                first_name=first_name,
                middle_name=middle_name,
                last_name=last_name,
                email=identity["email"],
                contact_number=contact_number,
                role=ROLE_USER,
            )
    except StoreError as e:
        _log.error(f"Profile error for identity {identity['id']}: {e}")
        compensated = False
        try:
            with connect(cfg.DB_DSN) as conn:
                compensated = delete_identity(conn, identity["id"]) > 0
        except StoreError as ce:
            _log.error(f"Could not roll back identity {identity['id']}: {ce}")
        raise ProfileSetupError(str(e), compensated=compensated) from e

    return identity


def create_user(
    conn: Any,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    contact_number: str = "",
    role: str = ROLE_USER,
) -> Dict[str, Any]:
    """Create identity + profile in one transaction (scripts, bootstrap)."""
    if role not in ROLES:
        raise ValueError("invalid_role")
    identity = create_identity(conn, email=email, password=password)
    profile = insert_profile(
        conn,
        user_id=identity["id"],
        first_name=first_name,
        last_name=last_name,
        email=identity["email"],
        contact_number=contact_number,
        role=role,
    )
    return {**identity, "role": profile["role"]}


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first admin if no identity exists yet.

    - AUTH_BOOTSTRAP_ADMIN_EMAIL (default: admin@example.com)
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD (default: admin123)

    Clearing either variable disables the bootstrap.
    """

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM auth_identities").fetchone()["n"]
        if int(n) > 0:
            return None

        email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
        password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD or ""
        if not email or not password:
            return None

        return create_user(
            conn,
            email=email,
            password=password,
            first_name="Site",
            last_name="Admin",
            role=ROLE_ADMIN,
        )
