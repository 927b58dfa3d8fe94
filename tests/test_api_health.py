"""Tests for GET /health."""

from __future__ import annotations

from datetime import datetime

from fastapi.testclient import TestClient

from filehub import __version__


class TestHealth:
    """Liveness endpoint."""

    def test_health_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert datetime.fromisoformat(body["time"]).tzinfo is not None

    def test_health_has_request_id(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.headers["X-Request-Id"]
