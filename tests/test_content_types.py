"""Tests for Content-Type resolution from filename extensions."""

from __future__ import annotations

import pytest

from filehub.content_types import DEFAULT_CONTENT_TYPE, extension_of, resolve_content_type


class TestResolveContentType:
    """Extension table lookups."""

    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("video.mp4", "video/mp4"),
            ("clip.mov", "video/mov"),
            ("stream.webm", "video/webm"),
            ("photo.png", "image/png"),
            ("photo.JPG", "image/jpg"),
            ("photo.jpeg", "image/jpeg"),
            ("anim.gif", "image/gif"),
            ("pic.WebP", "image/webp"),
            ("doc.pdf", "application/pdf"),
            ("bundle.zip", "application/zip"),
            ("bundle.rar", "application/zip"),
        ],
    )
    def test_known_extensions(self, filename: str, expected: str) -> None:
        """Known extensions map to their category type."""
        assert resolve_content_type(filename) == expected

    def test_unrecognized_extension_falls_back(self) -> None:
        """archive.tar is not in the table."""
        assert resolve_content_type("archive.tar") == "application/octet-stream"

    def test_no_extension_falls_back(self) -> None:
        assert resolve_content_type("README") == DEFAULT_CONTENT_TYPE

    def test_trailing_dot_falls_back(self) -> None:
        assert resolve_content_type("weird.") == DEFAULT_CONTENT_TYPE

    def test_uses_last_extension_only(self) -> None:
        """movie.mp4.exe is not a video."""
        assert resolve_content_type("movie.mp4.exe") == DEFAULT_CONTENT_TYPE

    def test_storage_key_resolves_like_original_name(self) -> None:
        assert resolve_content_type("1718000000000-My_Video.MP4") == "video/mp4"


class TestExtensionOf:
    """Extension extraction."""

    def test_directory_dots_are_ignored(self) -> None:
        assert extension_of("some.dir/file") == ""

    def test_windows_path(self) -> None:
        assert extension_of("C:\\media\\clip.MOV") == "mov"
