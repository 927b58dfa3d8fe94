"""Upload Service - turns an incoming file stream into a stored object.

Flow for one upload:
1. Derive a storage key from the client filename
2. Stream the payload into the object store (temp file + atomic commit)
3. Build a FileDescriptor from the committed object and form fields
4. Append the descriptor to the ledger

If the ledger append fails the committed object is deleted again, so every
stored object has exactly one descriptor. No descriptor is recorded for an
object that failed to write.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import BinaryIO, Final

from filehub.ledger import UNKNOWN_OWNER, FileDescriptor, Ledger, LedgerError
from filehub.storage.errors import (
    ObjectExistsError,
    ObjectStorageError,
    StorageBackendError,
)
from filehub.storage.models import StoredObjectMetadata
from filehub.storage.naming import MonotonicMillisClock, make_storage_key
from filehub.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

OWNER_FIELDS: Final[tuple[str, ...]] = ("ownerEmail", "userEmail", "owner")
MAX_KEY_ATTEMPTS: Final[int] = 5


class InvalidUploadError(Exception):
    """Raised when an upload request is missing its file or has bad fields."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def resolve_owner(fields: Mapping[str, str]) -> str:
    """Pick the owner identifier from form fields, or "unknown"."""
    for name in OWNER_FIELDS:
        value = fields.get(name, "").strip()
        if value:
            return value
    return UNKNOWN_OWNER


def build_file_url(public_base_url: str, key: str) -> str:
    """Retrieval URL for a stored key."""
    return f"{public_base_url.rstrip('/')}/files/{key}"


class UploadService:
    """Coordinates object-store writes and ledger appends for uploads."""

    def __init__(
        self,
        store: ObjectStore,
        ledger: Ledger,
        *,
        public_base_url: str,
        max_upload_bytes: int | None = None,
        clock: MonotonicMillisClock | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._public_base_url = public_base_url
        self._max_upload_bytes = max_upload_bytes
        self._clock = clock

    @property
    def max_upload_bytes(self) -> int | None:
        return self._max_upload_bytes

    def receive(
        self,
        source: BinaryIO | None,
        filename: str | None,
        fields: Mapping[str, str] | None = None,
        *,
        deadline: float | None = None,
    ) -> FileDescriptor:
        """Store one uploaded file and record its descriptor.

        Args:
            source: Readable binary stream of the file part, None if absent.
            filename: Client-supplied original filename.
            fields: Scalar form fields sent with the file.
            deadline: Optional ``time.monotonic()`` deadline for the copy.

        Returns:
            The committed FileDescriptor.

        Raises:
            InvalidUploadError: If there is no file part.
            ObjectTooLargeError: If the payload exceeds the size limit.
            UploadTimeoutError: If the deadline passes mid-copy.
            StorageBackendError: If the object cannot be written.
            LedgerError: If the descriptor cannot be recorded.
        """
        if source is None:
            raise InvalidUploadError("No file uploaded")

        fields = dict(fields or {})
        original_name = (filename or "").strip() or "file"

        key, metadata = self._store_with_fresh_key(source, original_name, deadline)

        descriptor = FileDescriptor(
            key=key,
            original_name=original_name,
            size_bytes=metadata.size_bytes,
            content_type=metadata.content_type,
            url=build_file_url(self._public_base_url, key),
            owner=resolve_owner(fields),
            created_at=metadata.created_at,
            sha256=metadata.sha256,
            fields=fields,
        )

        try:
            self._ledger.append(descriptor)
        except LedgerError:
            logger.error("Ledger append failed for key=%s, removing stored object", key)
            self._discard(key)
            raise

        logger.info(
            "Upload stored: key=%s size=%d owner=%s",
            key,
            descriptor.size_bytes,
            descriptor.owner,
        )
        return descriptor

    def _store_with_fresh_key(
        self, source: BinaryIO, original_name: str, deadline: float | None
    ) -> tuple[str, StoredObjectMetadata]:
        """Write the payload, generating a new key if one is already taken."""
        start = source.tell() if source.seekable() else None

        for attempt in range(1, MAX_KEY_ATTEMPTS + 1):
            key = make_storage_key(original_name, self._clock)
            try:
                metadata = self._store.put(
                    key,
                    source,
                    max_bytes=self._max_upload_bytes,
                    deadline=deadline,
                )
                return key, metadata
            except ObjectExistsError:
                logger.warning("Storage key collision on %s (attempt %d)", key, attempt)
                if start is None:
                    break
                source.seek(start)

        raise StorageBackendError(message="Could not allocate a unique storage key")

    def _discard(self, key: str) -> None:
        try:
            self._store.delete(key)
        except ObjectStorageError as e:
            logger.error("Failed to remove orphaned object key=%s: %s", key, e)
