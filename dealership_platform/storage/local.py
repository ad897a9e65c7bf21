from __future__ import annotations

import logging
import secrets
import string
from pathlib import Path, PurePosixPath

from dealership_platform.config import Config
from dealership_platform.errors import StorageError
from dealership_platform.util.time import epoch_ms

_log = logging.getLogger("dealership_platform.storage")

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

_KEY_ALPHABET = string.ascii_lowercase + string.digits


def _debug(msg: str) -> None:
    _log.debug(msg)


class LocalObjectStore:
    """A single public bucket on the local filesystem.

    Objects are written below `<root>/<bucket>/` and served by the API under
    `<public_base>/<bucket>/<key>`. Keys are never overwritten.
    """

    def __init__(self, root: str | Path, bucket: str, *, public_base: str = "/media", max_bytes: int = 5 * 1024 * 1024):
        if not bucket or "/" in bucket or bucket in (".", ".."):
            raise ValueError("invalid_bucket")
        self.root = Path(root)
        self.bucket = bucket
        self.public_base = public_base.rstrip("/")
        self.max_bytes = int(max_bytes)

    @classmethod
    def from_config(cls, cfg: Config) -> "LocalObjectStore":
        return cls(
            cfg.STORAGE_DIR,
            cfg.STORAGE_BUCKET,
            public_base=cfg.PUBLIC_MEDIA_URL,
            max_bytes=cfg.STORAGE_MAX_FILE_BYTES,
        )

    @property
    def bucket_dir(self) -> Path:
        return self.root / self.bucket

    def object_key(self, owner_id: str, filename: str | None, content_type: str | None) -> str:
        """`<owner>/<epoch_ms>-<random7>.<ext>`; ext from the filename, else the content type."""
        ext = PurePosixPath(filename or "").suffix.lstrip(".").lower()
        if not ext or not ext.isalnum():
            ext = ALLOWED_CONTENT_TYPES.get((content_type or "").lower(), "bin")
        rand = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(7))
        return f"{owner_id}/{epoch_ms()}-{rand}.{ext}"

    def _path_for(self, key: str) -> Path:
        parts = PurePosixPath(key).parts
        if not parts or any(p in ("", ".", "..") for p in parts) or PurePosixPath(key).is_absolute():
            raise StorageError("Invalid object key")
        return self.bucket_dir.joinpath(*parts)

    def validate(self, data: bytes, content_type: str | None) -> None:
        ct = (content_type or "").lower()
        if ct not in ALLOWED_CONTENT_TYPES:
            raise StorageError(f"mime type {content_type or 'unknown'} is not supported")
        if not data:
            raise StorageError("file is empty")
        if len(data) > self.max_bytes:
            raise StorageError("The object exceeded the maximum allowed size")

    def upload(self, key: str, data: bytes, content_type: str | None) -> str:
        """Validate and write one object; returns the key."""
        self.validate(data, content_type)
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError:
            raise StorageError("The resource already exists")
        except OSError as e:
            raise StorageError(f"write failed: {e.strerror or e}")
        _debug(f"Stored {key} ({len(data)} bytes)")
        return key

    def public_url(self, key: str) -> str:
        return f"{self.public_base}/{self.bucket}/{key}"
