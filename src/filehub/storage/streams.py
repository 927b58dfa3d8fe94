"""Bounded-chunk stream copying.

Both upload ingestion and range serving move bytes through fixed-size
buffers so memory use does not grow with object size.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import BinaryIO, Final

from filehub.storage.errors import ObjectTooLargeError, UploadTimeoutError

DEFAULT_CHUNK_SIZE: Final[int] = 64 * 1024


@dataclass(frozen=True)
class CopyResult:
    """Outcome of a completed copy.

    Attributes:
        size_bytes: Total bytes written.
        sha256: Hex SHA-256 of the bytes written.
    """

    size_bytes: int
    sha256: str


def copy_stream(
    source: BinaryIO,
    target: BinaryIO,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_bytes: int | None = None,
    deadline: float | None = None,
) -> CopyResult:
    """Copy ``source`` into ``target`` one chunk at a time.

    Args:
        source: Readable binary stream.
        target: Writable binary stream.
        chunk_size: Maximum bytes held in memory per iteration.
        max_bytes: Abort once more than this many bytes have been read.
        deadline: ``time.monotonic()`` value after which the copy aborts.

    Returns:
        CopyResult with size and digest.

    Raises:
        ObjectTooLargeError: If ``max_bytes`` is exceeded.
        UploadTimeoutError: If ``deadline`` passes mid-copy.
        OSError: On read or write failure.
    """
    digest = hashlib.sha256()
    total = 0

    while True:
        if deadline is not None and time.monotonic() > deadline:
            raise UploadTimeoutError()

        chunk = source.read(chunk_size)
        if not chunk:
            break

        total += len(chunk)
        if max_bytes is not None and total > max_bytes:
            raise ObjectTooLargeError(
                f"Object exceeds maximum size of {max_bytes} bytes",
                limit=max_bytes,
            )

        digest.update(chunk)
        target.write(chunk)

    return CopyResult(size_bytes=total, sha256=digest.hexdigest())


class SpanReader:
    """Iterator over ``length`` bytes of ``source`` beginning at ``start``.

    Yields chunks of at most ``chunk_size`` bytes and stops short if the
    stream ends early. ``source`` is closed when the span is exhausted or
    when ``close()`` is called, whichever comes first.
    """

    def __init__(
        self,
        source: BinaryIO,
        start: int,
        length: int,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._source = source
        self._remaining = length
        self._chunk_size = chunk_size
        try:
            source.seek(start)
        except (OSError, ValueError):
            source.close()
            raise

    def __iter__(self) -> SpanReader:
        return self

    def __next__(self) -> bytes:
        if self._remaining <= 0 or self._source.closed:
            self.close()
            raise StopIteration

        chunk = self._source.read(min(self._chunk_size, self._remaining))
        if not chunk:
            self.close()
            raise StopIteration

        self._remaining -= len(chunk)
        return chunk

    @property
    def closed(self) -> bool:
        return self._source.closed

    def close(self) -> None:
        """Release the underlying stream. Safe to call more than once."""
        self._source.close()
