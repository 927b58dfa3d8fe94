"""Filesystem object storage backend.

Objects are stored flat under the base directory, one file per key:

    {base_dir}/
        .incoming/                  # in-flight uploads (never listed)
            upload-<random>.tmp
        1718000000000-video.mp4     # committed objects

Writes stream into ``.incoming/`` and are committed with ``os.link``, which
fails if the key is already taken, so an object appears atomically and is
never overwritten. The temporary file is removed on every path, success or
failure.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from filehub.content_types import resolve_content_type
from filehub.storage.errors import (
    ObjectExistsError,
    ObjectNotFoundError,
    ObjectStorageError,
    PathTraversalError,
    StorageBackendError,
)
from filehub.storage.models import StoredObjectMetadata
from filehub.storage.naming import is_unsafe_key, validate_key
from filehub.storage.object_store import ObjectStore
from filehub.storage.streams import DEFAULT_CHUNK_SIZE, SpanReader, copy_stream
from filehub.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

INCOMING_DIR_NAME = ".incoming"
_TMP_PREFIX = "upload-"
_TMP_SUFFIX = ".tmp"


class FilesystemObjectStore(ObjectStore):
    """Filesystem-based object storage implementation."""

    def __init__(self, base_dir: str | Path, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        """Initialize filesystem storage, creating directories if missing.

        Args:
            base_dir: Base directory for stored objects.
            chunk_size: Buffer size for streaming reads and writes.

        Raises:
            StorageBackendError: If the directories cannot be created.
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        self._base_dir = Path(base_dir).resolve()
        self._incoming_dir = self._base_dir / INCOMING_DIR_NAME
        self._chunk_size = chunk_size

        try:
            self._incoming_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to create storage directory: {e}",
                cause=e,
            ) from e

        logger.debug("FilesystemObjectStore initialized with base_dir=%s", self._base_dir)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def base_dir(self) -> Path:
        """Return the base directory path."""
        return self._base_dir

    @property
    def chunk_size(self) -> int:
        """Return the streaming buffer size."""
        return self._chunk_size

    def _object_path(self, key: str) -> Path:
        """Resolve the path for a key, validating it first."""
        validate_key(key)
        path = self._base_dir / key
        # The joined path must stay directly under base_dir.
        if path.resolve().parent != self._base_dir:
            raise PathTraversalError(
                message="Path resolves outside storage base directory",
                key=key,
            )
        return path

    def _metadata_from_stat(
        self, key: str, st: os.stat_result, sha256: str | None = None
    ) -> StoredObjectMetadata:
        return StoredObjectMetadata(
            key=key,
            size_bytes=st.st_size,
            content_type=resolve_content_type(key),
            created_at=datetime.fromtimestamp(st.st_mtime, UTC),
            sha256=sha256,
        )

    @traced_storage_operation("put")
    def put(
        self,
        key: str,
        source: BinaryIO,
        *,
        max_bytes: int | None = None,
        deadline: float | None = None,
    ) -> StoredObjectMetadata:
        """Stream an object into a temporary file and commit it under ``key``."""
        final_path = self._object_path(key)
        if final_path.exists():
            raise ObjectExistsError(key=key)

        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=_TMP_PREFIX, suffix=_TMP_SUFFIX, dir=self._incoming_dir
            )
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to create temporary file: {e}",
                key=key,
                cause=e,
            ) from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as target:
                result = copy_stream(
                    source,
                    target,
                    chunk_size=self._chunk_size,
                    max_bytes=max_bytes,
                    deadline=deadline,
                )
                target.flush()
                os.fsync(target.fileno())

            os.link(tmp_path, final_path)
            st = final_path.stat()
        except FileExistsError as e:
            raise ObjectExistsError(key=key) from e
        except ObjectStorageError as e:
            e.key = key
            raise
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to write object: {e}",
                key=key,
                cause=e,
            ) from e
        finally:
            tmp_path.unlink(missing_ok=True)

        logger.debug(
            "Stored object: key=%s size=%d sha256=%s", key, result.size_bytes, result.sha256
        )
        return self._metadata_from_stat(key, st, sha256=result.sha256)

    @traced_storage_operation("head")
    def head(self, key: str) -> StoredObjectMetadata:
        """Get object metadata from the filesystem."""
        path = self._object_path(key)
        try:
            st = path.stat()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(key=key) from e
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to stat object: {e}",
                key=key,
                cause=e,
            ) from e

        if not path.is_file():
            raise ObjectNotFoundError(key=key)

        return self._metadata_from_stat(key, st)

    @traced_storage_operation("open_range")
    def open_range(self, key: str, start: int, length: int) -> SpanReader:
        """Open the object now and stream ``length`` bytes from ``start``."""
        path = self._object_path(key)
        try:
            source = open(path, "rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise ObjectNotFoundError(key=key) from e
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to open object: {e}",
                key=key,
                cause=e,
            ) from e

        return SpanReader(source, start, length, chunk_size=self._chunk_size)

    @traced_storage_operation("delete")
    def delete(self, key: str) -> None:
        """Delete an object file."""
        path = self._object_path(key)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(key=key) from e
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to delete object: {e}",
                key=key,
                cause=e,
            ) from e

        logger.debug("Deleted object: key=%s", key)

    @traced_storage_operation("list_objects")
    def list_objects(self) -> list[StoredObjectMetadata]:
        """List committed objects, skipping in-flight uploads and hidden names."""
        result: list[StoredObjectMetadata] = []
        try:
            with os.scandir(self._base_dir) as entries:
                for entry in entries:
                    if is_unsafe_key(entry.name) or not entry.is_file(follow_symlinks=False):
                        continue
                    try:
                        st = entry.stat(follow_symlinks=False)
                    except FileNotFoundError:
                        # Deleted between scandir and stat.
                        continue
                    result.append(self._metadata_from_stat(entry.name, st))
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to list objects: {e}",
                cause=e,
            ) from e

        return result

    def purge_stale_uploads(self, max_age_seconds: float = 3600.0) -> int:
        """Remove temporary upload files left behind by a crashed process.

        Only files older than ``max_age_seconds`` are removed so uploads in
        flight in another worker are left alone.

        Returns:
            Number of files removed.
        """
        cutoff = time.time() - max_age_seconds
        removed = 0
        for tmp_path in self._incoming_dir.glob(f"{_TMP_PREFIX}*{_TMP_SUFFIX}"):
            try:
                if tmp_path.stat().st_mtime < cutoff:
                    tmp_path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Failed to remove stale upload %s: %s", tmp_path.name, e)

        if removed:
            logger.info("Removed %d stale temporary uploads", removed)
        return removed
