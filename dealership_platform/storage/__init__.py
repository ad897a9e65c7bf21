"""Object storage for listing images."""

from .local import ALLOWED_CONTENT_TYPES, LocalObjectStore
from .uploads import IncomingFile, UploadResult, upload_batch

__all__ = [
    "ALLOWED_CONTENT_TYPES",
    "LocalObjectStore",
    "IncomingFile",
    "UploadResult",
    "upload_batch",
]
