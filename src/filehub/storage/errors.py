"""Object storage error types.

All storage failures surface as typed exceptions. Operations that cannot
complete safely raise rather than return partial results.
"""

from __future__ import annotations


class ObjectStorageError(Exception):
    """Base exception for object storage operations.

    Attributes:
        message: Human-readable error message.
        key: Storage key associated with the operation (if applicable).
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.key = key

    def __str__(self) -> str:
        if self.key:
            return f"{self.message} key={self.key}"
        return self.message


class ObjectNotFoundError(ObjectStorageError):
    """Raised when no object exists under the requested key."""

    def __init__(self, message: str = "Object not found", *, key: str | None = None) -> None:
        super().__init__(message, key=key)


class PathTraversalError(ObjectStorageError):
    """Raised when a storage key is not a single safe path segment.

    Covers "..", separators, absolute paths, null bytes and hidden names that
    would address files outside the object namespace.
    """

    def __init__(
        self,
        message: str = "Invalid key: path traversal detected",
        *,
        key: str | None = None,
    ) -> None:
        super().__init__(message, key=key)


class StorageBackendError(ObjectStorageError):
    """Raised when the backend cannot complete an operation.

    Indicates the backend itself failed (disk full, permission denied, I/O
    error) rather than a logical error like a missing object.
    """

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.cause = cause


class ObjectTooLargeError(ObjectStorageError):
    """Raised when an incoming stream exceeds the configured size limit."""

    def __init__(
        self,
        message: str = "Object exceeds maximum size",
        *,
        key: str | None = None,
        limit: int | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.limit = limit


class UploadTimeoutError(ObjectStorageError):
    """Raised when copying an incoming stream runs past its deadline."""

    def __init__(self, message: str = "Upload timed out", *, key: str | None = None) -> None:
        super().__init__(message, key=key)


class ObjectExistsError(ObjectStorageError):
    """Raised when committing under a key that is already taken.

    Stored objects are immutable; a write never replaces an existing key.
    """

    def __init__(self, message: str = "Object already exists", *, key: str | None = None) -> None:
        super().__init__(message, key=key)
