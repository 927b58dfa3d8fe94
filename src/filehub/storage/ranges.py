"""HTTP Range header parsing.

Supports a single ``bytes=<start>-<end>`` range with ``end`` optional.
Anything else (other units, suffix ranges, multiple ranges, non-numeric
bounds, ``start`` at or past the end of the object, ``end < start``) is
rejected with InvalidRangeError so the caller can answer 416.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_RANGE_PATTERN = re.compile(r"^\s*bytes\s*=\s*(\d+)\s*-\s*(\d*)\s*$", re.IGNORECASE)


class InvalidRangeError(Exception):
    """Raised when a Range header is malformed or unsatisfiable.

    Attributes:
        header: The raw Range header value.
        size: Size of the targeted object in bytes.
    """

    def __init__(self, message: str, *, header: str, size: int) -> None:
        super().__init__(message)
        self.message = message
        self.header = header
        self.size = size


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte interval ``[start, end]`` within an object of ``size`` bytes."""

    start: int
    end: int
    size: int

    @property
    def length(self) -> int:
        """Number of bytes covered by the interval."""
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        """Value for the ``Content-Range`` response header."""
        return f"bytes {self.start}-{self.end}/{self.size}"

    @property
    def is_full(self) -> bool:
        """True if the interval spans the whole object."""
        return self.start == 0 and self.end == self.size - 1

    @classmethod
    def full(cls, size: int) -> ByteRange:
        """Interval covering an entire non-empty object."""
        return cls(start=0, end=size - 1, size=size)


def parse_range_header(header: str, size: int) -> ByteRange:
    """Parse a Range header against an object of ``size`` bytes.

    ``end`` defaults to ``size - 1`` when omitted and is clamped to it when
    larger.

    Args:
        header: Raw Range header value, e.g. ``"bytes=0-1023"``.
        size: Object size in bytes.

    Returns:
        ByteRange within ``[0, size - 1]``.

    Raises:
        InvalidRangeError: If the header is malformed or unsatisfiable.
    """
    match = _RANGE_PATTERN.match(header)
    if match is None:
        raise InvalidRangeError("Malformed Range header", header=header, size=size)

    start = int(match.group(1))
    end_raw = match.group(2)

    if start >= size:
        raise InvalidRangeError("Range start beyond end of object", header=header, size=size)

    end = int(end_raw) if end_raw else size - 1
    if end < start:
        raise InvalidRangeError("Range end precedes start", header=header, size=size)

    return ByteRange(start=start, end=min(end, size - 1), size=size)
