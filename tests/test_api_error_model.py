"""Tests for the error envelope, request IDs and body size limiting.

Tests cover:
A) Every error uses {code, message, details, request_id}
B) X-Request-Id is echoed when sent and generated otherwise
C) Unknown routes and methods use the envelope
D) Streamed bodies past the limit are cut off with 413
E) Unhandled exceptions become 500 without leaking internals
F) Only handlers for errors the service raises are installed
"""

from __future__ import annotations

import io
from collections.abc import Iterator
from pathlib import Path

from fastapi.exceptions import RequestValidationError, WebSocketRequestValidationError
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException

from filehub.api.main import create_app
from filehub.api.middleware.body_limit import RequestBodyTooLargeError
from filehub.config import Settings
from filehub.ledger import InMemoryLedger, LedgerError
from filehub.services.uploads import InvalidUploadError
from filehub.storage.errors import (
    ObjectNotFoundError,
    ObjectStorageError,
    ObjectTooLargeError,
    PathTraversalError,
    UploadTimeoutError,
)
from filehub.storage.filesystem_store import FilesystemObjectStore
from filehub.storage.ranges import InvalidRangeError

ENVELOPE_KEYS = {"code", "message", "details", "request_id"}


class ExplodingLedger(InMemoryLedger):
    def list_all(self):  # type: ignore[no-untyped-def]
        raise RuntimeError("secret internal detail")


class TestRequestId:
    """Request ID propagation."""

    def test_incoming_id_echoed(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-Id": "req-123"})
        assert response.headers["X-Request-Id"] == "req-123"

    def test_generated_when_absent(self, client: TestClient) -> None:
        first = client.get("/health").headers["X-Request-Id"]
        second = client.get("/health").headers["X-Request-Id"]

        assert first
        assert first != second

    def test_error_body_matches_header(self, client: TestClient) -> None:
        response = client.get(
            "/files/1700000000000-nope.mp4", headers={"X-Request-Id": "req-404"}
        )

        assert response.status_code == 404
        assert response.json()["request_id"] == "req-404"
        assert response.headers["X-Request-Id"] == "req-404"


class TestEnvelope:
    """Error envelope shape."""

    def test_not_found_envelope(self, client: TestClient) -> None:
        response = client.get("/files/1700000000000-nope.mp4")

        body = response.json()
        assert set(body) == ENVELOPE_KEYS
        assert body["code"] == "NOT_FOUND"
        assert body["details"] is None

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/no/such/route")

        assert response.status_code == 404
        body = response.json()
        assert set(body) == ENVELOPE_KEYS
        assert body["code"] == "NOT_FOUND"

    def test_method_not_allowed(self, client: TestClient) -> None:
        response = client.put("/files")

        assert response.status_code == 405
        body = response.json()
        assert set(body) == ENVELOPE_KEYS
        assert body["code"] == "METHOD_NOT_ALLOWED"

    def test_unhandled_exception(
        self, settings: Settings, store: FilesystemObjectStore
    ) -> None:
        store.put("1700000000000-a.mp4", io.BytesIO(b"abc"))
        app = create_app(settings, store=store, ledger=ExplodingLedger())

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/files")

        assert response.status_code == 500
        body = response.json()
        assert set(body) == ENVELOPE_KEYS
        assert body["code"] == "INTERNAL_ERROR"
        assert "secret" not in response.text


class TestStreamedBodyLimit:
    """Bodies without Content-Length are counted as they arrive."""

    def test_chunked_body_over_limit(self, tmp_path: Path) -> None:
        upload_dir = tmp_path / "uploads"
        settings = Settings(
            upload_dir=str(upload_dir),
            ledger_path=str(tmp_path / "ledger.jsonl"),
            max_upload_bytes=1024,
        )
        store = FilesystemObjectStore(upload_dir)
        app = create_app(settings, store=store, ledger=InMemoryLedger())
        boundary = "filehubboundary"

        def body() -> Iterator[bytes]:
            yield (
                f"--{boundary}\r\n"
                'Content-Disposition: form-data; name="file"; filename="big.bin"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            ).encode()
            for _ in range(40):
                yield b"x" * 64 * 1024
            yield f"\r\n--{boundary}--\r\n".encode()

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.post(
                "/upload",
                content=body(),
                headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
            )

        assert response.status_code == 413
        assert response.json()["code"] == "PAYLOAD_TOO_LARGE"
        assert store.list_objects() == []


class TestHandlerRegistry:
    """Exception handlers installed by create_app."""

    def test_every_handler_maps_a_raised_error(
        self, settings: Settings, store: FilesystemObjectStore
    ) -> None:
        app = create_app(settings, store=store, ledger=InMemoryLedger())

        registered = set(app.exception_handlers) - {WebSocketRequestValidationError}

        assert registered == {
            HTTPException,
            RequestValidationError,
            InvalidUploadError,
            PathTraversalError,
            ObjectNotFoundError,
            UploadTimeoutError,
            ObjectTooLargeError,
            RequestBodyTooLargeError,
            InvalidRangeError,
            ObjectStorageError,
            LedgerError,
            Exception,
        }
