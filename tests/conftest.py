"""Pytest configuration and fixtures for FileHub tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from filehub.api.main import create_app
from filehub.config import Settings
from filehub.ledger import InMemoryLedger
from filehub.storage.filesystem_store import FilesystemObjectStore

TEST_BASE_URL = "http://files.test"


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    """Directory backing the object store."""
    return tmp_path / "uploads"


@pytest.fixture
def settings(tmp_path: Path, upload_dir: Path) -> Settings:
    """Settings pointing at temporary directories."""
    return Settings(
        upload_dir=str(upload_dir),
        ledger_path=str(tmp_path / "ledger" / "files.jsonl"),
        max_upload_bytes=4 * 1024 * 1024,
        public_base_url=TEST_BASE_URL,
        chunk_size=1024,
    )


@pytest.fixture
def store(upload_dir: Path) -> FilesystemObjectStore:
    """Filesystem store with a small chunk size to exercise chunking."""
    return FilesystemObjectStore(upload_dir, chunk_size=1024)


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Fresh in-memory ledger."""
    return InMemoryLedger()


@pytest.fixture
def client(
    settings: Settings, store: FilesystemObjectStore, ledger: InMemoryLedger
) -> Iterator[TestClient]:
    """Test client wired to the temporary store and in-memory ledger."""
    app = create_app(settings, store=store, ledger=ledger)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
