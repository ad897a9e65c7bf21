from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)

CAR_STATUSES = ("available", "sold", "pending", "reserved")
INQUIRY_STATUSES = ("pending", "contacted", "confirmed", "completed", "cancelled")


@dataclass(frozen=True)
class Principal:
    """The authenticated identity behind a request."""

    user_id: str
    email: str
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
