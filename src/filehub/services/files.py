"""File Service - listing, lookup, range-aware reads and deletion."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from filehub.ledger import UNKNOWN_OWNER, FileDescriptor, Ledger
from filehub.services.uploads import build_file_url
from filehub.storage.models import StoredObjectMetadata
from filehub.storage.naming import original_name_hint, validate_key
from filehub.storage.object_store import ObjectStore
from filehub.storage.ranges import ByteRange, parse_range_header

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileStream:
    """An opened object ready to be streamed to a client.

    Attributes:
        key: Storage key.
        content_type: MIME type for the response.
        size_bytes: Total object size.
        byte_range: Requested span, or None for a whole-object response.
        body: Iterator yielding exactly ``content_length`` bytes in chunks.
    """

    key: str
    content_type: str
    size_bytes: int
    byte_range: ByteRange | None
    body: Iterator[bytes]

    @property
    def is_partial(self) -> bool:
        return self.byte_range is not None

    @property
    def content_length(self) -> int:
        if self.byte_range is None:
            return self.size_bytes
        return self.byte_range.length

    def close(self) -> None:
        """Release the underlying object if the body holds it open."""
        close = getattr(self.body, "close", None)
        if close is not None:
            close()


class FileService:
    """Read and delete operations over the object store and ledger."""

    def __init__(self, store: ObjectStore, ledger: Ledger, *, public_base_url: str) -> None:
        self._store = store
        self._ledger = ledger
        self._public_base_url = public_base_url

    def _describe_unrecorded(self, metadata: StoredObjectMetadata) -> FileDescriptor:
        """Descriptor for an object that has no ledger entry."""
        return FileDescriptor(
            key=metadata.key,
            original_name=original_name_hint(metadata.key),
            size_bytes=metadata.size_bytes,
            content_type=metadata.content_type,
            url=build_file_url(self._public_base_url, metadata.key),
            owner=UNKNOWN_OWNER,
            created_at=metadata.created_at,
            sha256=metadata.sha256,
        )

    def list_files(self) -> list[FileDescriptor]:
        """List every stored object in store enumeration order.

        Ledger descriptors supply original names and owners; objects without
        one are described from their file metadata. Size always comes from
        the store.
        """
        recorded = {d.key: d for d in self._ledger.list_all()}
        result: list[FileDescriptor] = []
        for metadata in self._store.list_objects():
            descriptor = recorded.get(metadata.key)
            result.append(descriptor or self._describe_unrecorded(metadata))
        return result

    def list_owner_files(self, owner: str) -> list[FileDescriptor]:
        """List ledger descriptors uploaded by ``owner``."""
        return self._ledger.list_by_owner(owner)

    def get_descriptor(self, key: str) -> FileDescriptor:
        """Return the descriptor for an existing object.

        Raises:
            ObjectNotFoundError: If no object is stored under ``key``.
            PathTraversalError: If the key is unsafe.
        """
        metadata = self._store.head(key)
        return self._ledger.get(key) or self._describe_unrecorded(metadata)

    def open(self, key: str, range_header: str | None = None) -> FileStream:
        """Open an object for whole or partial streaming.

        Args:
            key: Storage key.
            range_header: Raw ``Range`` request header, if any.

        Returns:
            FileStream whose body yields the selected bytes.

        Raises:
            ObjectNotFoundError: If no object is stored under ``key``.
            PathTraversalError: If the key is unsafe.
            InvalidRangeError: If the Range header is malformed or unsatisfiable.
            StorageBackendError: If the object cannot be opened.
        """
        metadata = self._store.head(key)

        byte_range: ByteRange | None = None
        if range_header:
            byte_range = parse_range_header(range_header, metadata.size_bytes)
            body = self._store.open_range(key, byte_range.start, byte_range.length)
        else:
            body = self._store.open_range(key, 0, metadata.size_bytes)

        return FileStream(
            key=key,
            content_type=metadata.content_type,
            size_bytes=metadata.size_bytes,
            byte_range=byte_range,
            body=body,
        )

    def delete(self, key: str) -> None:
        """Delete an object and its ledger descriptor.

        Raises:
            ObjectNotFoundError: If no object is stored under ``key``.
            PathTraversalError: If the key is unsafe.
            StorageBackendError: If the object cannot be removed.
            LedgerError: If the descriptor removal cannot be recorded.
        """
        validate_key(key)
        self._store.delete(key)
        had_descriptor = self._ledger.remove(key)
        logger.info("Deleted object: key=%s descriptor_removed=%s", key, had_descriptor)
