"""Object storage for uploaded files.

Backends:
- FilesystemObjectStore: Local filesystem with atomic commits
"""

from filehub.storage.errors import (
    ObjectExistsError,
    ObjectNotFoundError,
    ObjectStorageError,
    ObjectTooLargeError,
    PathTraversalError,
    StorageBackendError,
    UploadTimeoutError,
)
from filehub.storage.filesystem_store import FilesystemObjectStore
from filehub.storage.models import StoredObjectMetadata
from filehub.storage.object_store import ObjectStore
from filehub.storage.ranges import ByteRange, InvalidRangeError, parse_range_header

__all__ = [
    "ByteRange",
    "FilesystemObjectStore",
    "InvalidRangeError",
    "ObjectExistsError",
    "ObjectNotFoundError",
    "ObjectStorageError",
    "ObjectStore",
    "ObjectTooLargeError",
    "PathTraversalError",
    "StorageBackendError",
    "StoredObjectMetadata",
    "UploadTimeoutError",
    "parse_range_header",
]
