from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from dealership_platform.errors import StorageError

from .local import LocalObjectStore

_log = logging.getLogger("dealership_platform.storage")


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass
class UploadResult:
    urls: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return not self.urls


def upload_batch(store: LocalObjectStore, *, owner_id: str, files: Iterable[IncomingFile]) -> UploadResult:
    """Upload files one by one; a failing file never stops the batch."""
    result = UploadResult()
    for f in files:
        name = f.filename or "file"
        try:
            key = store.object_key(owner_id, f.filename, f.content_type)
            store.upload(key, f.data, f.content_type)
        except StorageError as e:
            result.errors.append(f"Failed to upload {name}: {e}")
            continue
        result.urls.append(store.public_url(key))

    if result.errors:
        _log.warning(f"Upload batch for {owner_id}: {len(result.urls)} ok, {len(result.errors)} failed")
    return result
