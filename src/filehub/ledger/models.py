"""File descriptor model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

UNKNOWN_OWNER = "unknown"


@dataclass(frozen=True)
class FileDescriptor:
    """Metadata record describing one stored object.

    Created when an upload commits and read-only afterwards. Removed from the
    ledger when the object is deleted.

    Attributes:
        key: Storage key of the object.
        original_name: Filename as supplied by the client.
        size_bytes: Exact payload length in bytes.
        content_type: MIME type resolved from the filename extension.
        url: Retrieval URL for the object bytes.
        owner: Uploading user's identifier, or "unknown".
        created_at: Commit timestamp (UTC).
        sha256: Hex SHA-256 of the payload.
        fields: Scalar form fields submitted alongside the file.
    """

    key: str
    original_name: str
    size_bytes: int
    content_type: str
    url: str
    owner: str
    created_at: datetime
    sha256: str | None = None
    fields: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert descriptor to dictionary for JSON serialization."""
        return {
            "key": self.key,
            "original_name": self.original_name,
            "size_bytes": self.size_bytes,
            "content_type": self.content_type,
            "url": self.url,
            "owner": self.owner,
            "created_at": self.created_at.isoformat(),
            "sha256": self.sha256,
            "fields": dict(self.fields),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileDescriptor:
        """Create a descriptor from its dictionary form.

        Raises:
            KeyError: If a required attribute is missing.
            ValueError: If ``created_at`` or ``size_bytes`` cannot be parsed.
        """
        fields_raw = data.get("fields") or {}
        return cls(
            key=str(data["key"]),
            original_name=str(data["original_name"]),
            size_bytes=int(data["size_bytes"]),
            content_type=str(data["content_type"]),
            url=str(data["url"]),
            owner=str(data.get("owner") or UNKNOWN_OWNER),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            sha256=str(data["sha256"]) if data.get("sha256") else None,
            fields={str(k): str(v) for k, v in fields_raw.items()},
        )
