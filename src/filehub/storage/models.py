"""Object storage data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StoredObjectMetadata:
    """Metadata for a stored object.

    Attributes:
        key: Storage key (single sanitized path segment).
        size_bytes: Size of the object content in bytes.
        content_type: MIME type resolved from the key's extension.
        created_at: Timestamp when the object was committed.
        sha256: Hex SHA-256 of the content when known (set on write,
            None when the metadata comes from a directory listing).
    """

    key: str
    size_bytes: int
    content_type: str
    created_at: datetime
    sha256: str | None = None
