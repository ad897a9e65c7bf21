"""Domain exceptions.

HTTP-level outcomes (401/403/400) are raised as `fastapi.HTTPException` by the
handlers and auth dependencies. The exceptions below come from the layers
underneath and are mapped to responses in `dealership_platform.api.errors`.
"""

from __future__ import annotations


class StoreError(Exception):
    """The relational store rejected or failed an operation (-> 500)."""


class NotFoundError(StoreError):
    """A single-row read/update/delete matched no row (-> 404)."""


class IdentityError(Exception):
    """The identity provider refused to create or authenticate an identity (-> 400)."""


class StorageError(Exception):
    """The object store rejected a file (type, size, write failure)."""


class ProfileSetupError(StoreError):
    """Signup created the identity but could not insert its profile row.

    `compensated` tells whether the identity was deleted again afterwards.
    """

    def __init__(self, message: str, *, compensated: bool):
        super().__init__(message)
        self.compensated = compensated
