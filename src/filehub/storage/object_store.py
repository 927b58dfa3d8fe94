"""Object storage interface definition."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import BinaryIO

from filehub.storage.models import StoredObjectMetadata


class ObjectStore(ABC):
    """Abstract base class for object storage backends.

    All implementations must provide:
    - Immutable objects: a committed key is never overwritten
    - Atomic visibility: readers see either nothing or the complete object
    - Streaming reads and writes in bounded chunks
    - Path traversal protection on every key

    Implementations:
    - FilesystemObjectStore: Local filesystem
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability."""
        ...

    @abstractmethod
    def put(
        self,
        key: str,
        source: BinaryIO,
        *,
        max_bytes: int | None = None,
        deadline: float | None = None,
    ) -> StoredObjectMetadata:
        """Stream an object into storage under a new key.

        Args:
            key: Storage key (must not already exist).
            source: Readable binary stream positioned at the payload start.
            max_bytes: Optional size limit for the payload.
            deadline: Optional ``time.monotonic()`` deadline for the copy.

        Returns:
            Metadata for the committed object, including size and sha256.

        Raises:
            PathTraversalError: If the key is unsafe.
            ObjectExistsError: If the key is already taken.
            ObjectTooLargeError: If the payload exceeds ``max_bytes``.
            UploadTimeoutError: If the deadline passes mid-copy.
            StorageBackendError: If the backend cannot complete the write.
        """
        ...

    @abstractmethod
    def head(self, key: str) -> StoredObjectMetadata:
        """Get object metadata without reading content.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            PathTraversalError: If the key is unsafe.
            StorageBackendError: If the backend cannot complete the operation.
        """
        ...

    @abstractmethod
    def open_range(self, key: str, start: int, length: int) -> Iterator[bytes]:
        """Open an object and return an iterator over a byte span.

        The object is opened before this method returns, so a missing object
        raises here rather than mid-stream.

        Args:
            key: Storage key.
            start: Offset of the first byte.
            length: Number of bytes to yield.

        Returns:
            Iterator of chunks, each no larger than the backend chunk size.
            If it has a ``close()`` method, callers that stop early call it
            to release the object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            PathTraversalError: If the key is unsafe.
            StorageBackendError: If the object cannot be opened.
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete an object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            PathTraversalError: If the key is unsafe.
            StorageBackendError: If the backend cannot complete the deletion.
        """
        ...

    @abstractmethod
    def list_objects(self) -> list[StoredObjectMetadata]:
        """List all committed objects in backend enumeration order.

        Raises:
            StorageBackendError: If the backend cannot complete the listing.
        """
        ...
