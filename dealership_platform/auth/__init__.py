"""Authentication / authorization helpers.

Auth is kept lightweight:

- `auth_identities` table (email/password hash) acting as the identity provider
- `users` profile table carrying the role flag (admin | user)
- JWT session tokens

The API accepts:

- `Authorization: Bearer <token>` (every resource handler)
- A secure httpOnly cookie (set by `/api/auth/login`), read by the route guard,
  `/api/auth/me`, bookmarks and uploads

The stored role is re-read on every authorized request; nothing is cached.
"""

from .deps import get_bearer_principal, get_session_principal, principal_from_cookie, require_admin
from .crud import bootstrap_admin_if_needed, create_user, register_account

__all__ = [
    "get_bearer_principal",
    "get_session_principal",
    "principal_from_cookie",
    "require_admin",
    "bootstrap_admin_if_needed",
    "create_user",
    "register_account",
]
