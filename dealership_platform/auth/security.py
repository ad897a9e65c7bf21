"""Password hashing (passlib) and session tokens (PyJWT, HS256)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

MIN_PASSWORD_LENGTH = 6

TOKEN_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "exp", "iat"]

_passwords = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password must not be blank")
    return _passwords.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password and for a malformed or unknown hash."""
    if not (password and password_hash):
        return False
    try:
        return bool(_passwords.verify(password, password_hash))
    except (TypeError, ValueError):
        return False


def create_access_token(*, secret: str, user_id: str, email: str, role: str, expires_minutes: int) -> str:
    """Sign a session token for one identity.

    `role` is carried for display only. Authorization re-reads the stored
    profile on every request.
    """
    if not secret:
        raise ValueError("token secret must not be blank")
    issued = datetime.now(timezone.utc).replace(microsecond=0)
    lifetime = timedelta(minutes=max(int(expires_minutes), 1))
    claims: Dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iat": issued,
        "exp": issued + lifetime,
    }
    return jwt.encode(claims, secret, algorithm=TOKEN_ALGORITHM)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    """Verify signature and expiry. Raises jwt.InvalidTokenError subclasses."""
    if not token or not secret:
        raise ValueError("token and secret are required")
    return jwt.decode(
        token,
        secret,
        algorithms=[TOKEN_ALGORITHM],
        options={"require": _REQUIRED_CLAIMS},
    )
