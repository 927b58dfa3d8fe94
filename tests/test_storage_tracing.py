"""Tests for object storage tracing.

Tests cover:
- No spans when tracing is disabled
- One span per storage operation with backend and hashed key attributes
- Raw keys never appear in span attributes
- Failed operations are marked with error attributes
"""

from __future__ import annotations

import hashlib
import io
from collections.abc import Iterator

import pytest

from filehub.observability import tracing
from filehub.storage.errors import ObjectNotFoundError
from filehub.storage.filesystem_store import FilesystemObjectStore

KEY = "1700000000000-secret_name.mp4"


@pytest.fixture
def captured_spans(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Enable tracing with in-memory span capture."""
    monkeypatch.setenv(tracing.OTEL_ENABLED_ENV, "1")
    monkeypatch.setenv(tracing.OTEL_TEST_CAPTURE_ENV, "1")
    assert tracing.configure_tracing()
    tracing.clear_test_spans()
    yield
    tracing.clear_test_spans()


class TestTracingDisabled:
    """Default behavior."""

    def test_disabled_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(tracing.OTEL_ENABLED_ENV, raising=False)
        assert tracing.is_tracing_enabled() is False
        assert tracing.configure_tracing() is False

    def test_operations_work_without_tracing(
        self, monkeypatch: pytest.MonkeyPatch, store: FilesystemObjectStore
    ) -> None:
        monkeypatch.delenv(tracing.OTEL_ENABLED_ENV, raising=False)
        tracing.clear_test_spans()

        store.put(KEY, io.BytesIO(b"abc"))

        assert store.head(KEY).size_bytes == 3
        assert tracing.get_test_spans() == []


@pytest.mark.usefixtures("captured_spans")
class TestStorageSpans:
    """Spans emitted by FilesystemObjectStore."""

    def test_put_span(self, store: FilesystemObjectStore) -> None:
        store.put(KEY, io.BytesIO(b"abc"))

        (span,) = [s for s in tracing.get_test_spans() if s.name.endswith(".put")]
        attrs = dict(span.attributes or {})
        assert span.name == "filehub.object_store.put"
        assert attrs["storage.backend"] == "filesystem"
        assert attrs["filehub.object_key_sha256"] == hashlib.sha256(KEY.encode()).hexdigest()
        assert attrs["filehub.object_size_bytes"] == 3
        assert attrs["filehub.object_sha256"] == hashlib.sha256(b"abc").hexdigest()

    def test_raw_key_not_exported(self, store: FilesystemObjectStore) -> None:
        store.put(KEY, io.BytesIO(b"abc"))
        store.head(KEY)
        store.delete(KEY)

        for span in tracing.get_test_spans():
            for value in (span.attributes or {}).values():
                assert "secret_name" not in str(value)

    def test_list_span_counts_objects(self, store: FilesystemObjectStore) -> None:
        store.put(KEY, io.BytesIO(b"abc"))
        store.list_objects()

        (span,) = [s for s in tracing.get_test_spans() if s.name.endswith(".list_objects")]
        assert dict(span.attributes or {})["filehub.object_count"] == 1

    def test_error_span(self, store: FilesystemObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError):
            store.head("1700000000000-missing.mp4")

        (span,) = [s for s in tracing.get_test_spans() if s.name.endswith(".head")]
        attrs = dict(span.attributes or {})
        assert attrs["error"] is True
        assert attrs["error.type"] == "ObjectNotFoundError"
