"""Storage key derivation and validation.

Client filenames are untrusted. They are reduced to a single safe path
segment and prefixed with a millisecond timestamp so that two uploads of the
same name never share a key:

    "My Holiday Video.mp4"       -> "1718000000000-My_Holiday_Video.mp4"
    "../../etc/passwd"           -> "1718000000001-passwd"
    "C:\\Users\\me\\report.pdf"  -> "1718000000002-report.pdf"

Timestamps come from ``MonotonicMillisClock``, which never hands out the same
value twice within a process, even when several uploads land in the same
millisecond.
"""

from __future__ import annotations

import re
import threading
import time
from typing import Final

from filehub.storage.errors import PathTraversalError

FALLBACK_NAME: Final[str] = "file"
MAX_NAME_LENGTH: Final[int] = 180

_WHITESPACE = re.compile(r"\s+")
_UNSAFE_CHARS = re.compile(r"[^\w.\-]")
_KEY_PATTERN = re.compile(r"^\d+-[\w.\-]+$")


class MonotonicMillisClock:
    """Millisecond clock whose successive readings are strictly increasing.

    Thread-safe. If the wall clock has not advanced (or stepped backwards)
    since the last reading, the previous value plus one is returned instead.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def now_ms(self) -> int:
        """Return the next distinct millisecond value."""
        wall = time.time_ns() // 1_000_000
        with self._lock:
            value = wall if wall > self._last else self._last + 1
            self._last = value
            return value


_default_clock = MonotonicMillisClock()


def sanitize_filename(filename: str) -> str:
    """Reduce an untrusted filename to a single filesystem-safe segment.

    Directory components are dropped, whitespace runs become underscores,
    other unsafe characters become underscores and leading dots are removed.
    An empty result falls back to ``"file"``.
    """
    # Treat both separator styles so Windows paths lose their directories too.
    name = filename.replace("\x00", "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _WHITESPACE.sub("_", name.strip())
    name = _UNSAFE_CHARS.sub("_", name)
    name = name.lstrip(".")

    if not name:
        return FALLBACK_NAME

    if len(name) > MAX_NAME_LENGTH:
        stem, dot, ext = name.rpartition(".")
        if dot and 0 < len(ext) < 16:
            name = stem[: MAX_NAME_LENGTH - len(ext) - 1] + "." + ext
        else:
            name = name[:MAX_NAME_LENGTH]

    return name


def make_storage_key(filename: str, clock: MonotonicMillisClock | None = None) -> str:
    """Derive a collision-resistant storage key from a client filename.

    Args:
        filename: Original client-supplied filename.
        clock: Clock supplying the prefix (process-wide default if None).

    Returns:
        Key of the form ``<millis>-<sanitized name>``.
    """
    stamp = (clock or _default_clock).now_ms()
    return f"{stamp}-{sanitize_filename(filename)}"


def is_unsafe_key(key: str) -> bool:
    """Check whether a key could address anything but a stored object.

    Rejects empty keys, null bytes, either path separator, "." and ".."
    segments, drive letters and hidden names (temporary uploads live under a
    dot-directory).
    """
    if not key:
        return True

    if "\x00" in key or "/" in key or "\\" in key:
        return True

    if key.startswith(".") or key.startswith("~"):
        return True

    if len(key) >= 2 and key[1] == ":":
        return True

    return False


def validate_key(key: str) -> None:
    """Raise PathTraversalError if a key is unsafe."""
    if is_unsafe_key(key):
        raise PathTraversalError(
            message="Invalid key: path traversal or unsafe characters detected",
            key=key,
        )


def is_generated_key(key: str) -> bool:
    """Return True if a key has the ``<millis>-<name>`` shape produced here."""
    return bool(_KEY_PATTERN.match(key))


def original_name_hint(key: str) -> str:
    """Strip the timestamp prefix from a generated key.

    Used to label objects that have no ledger descriptor. Keys that were not
    generated by ``make_storage_key`` are returned unchanged.
    """
    if is_generated_key(key):
        return key.split("-", 1)[1]
    return key
