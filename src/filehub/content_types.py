"""Content-Type resolution from filename extensions.

A fixed category table maps lower-cased extensions to MIME types. Unknown or
missing extensions resolve to ``application/octet-stream``.
"""

from __future__ import annotations

from typing import Final

DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"

VIDEO_EXTENSIONS: Final[frozenset[str]] = frozenset({"mp4", "mov", "webm"})
IMAGE_EXTENSIONS: Final[frozenset[str]] = frozenset({"png", "jpg", "jpeg", "gif", "webp"})

_FIXED_TYPES: Final[dict[str, str]] = {
    "pdf": "application/pdf",
    "zip": "application/zip",
    "rar": "application/zip",
}


def extension_of(filename: str) -> str:
    """Return the lower-cased extension of a filename without the dot.

    Returns an empty string when the name has no extension.
    """
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].lower()


def resolve_content_type(filename: str) -> str:
    """Map a filename to its MIME type.

    Args:
        filename: Original filename or storage key.

    Returns:
        MIME type string, never empty.
    """
    ext = extension_of(filename)
    if ext in VIDEO_EXTENSIONS:
        return f"video/{ext}"
    if ext in IMAGE_EXTENSIONS:
        return f"image/{ext}"
    return _FIXED_TYPES.get(ext, DEFAULT_CONTENT_TYPE)
