"""FileHub FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filehub import __version__
from filehub.api.errors import register_exception_handlers
from filehub.api.middleware.body_limit import MULTIPART_OVERHEAD_BYTES, BodySizeLimitMiddleware
from filehub.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from filehub.api.routes.files import router as files_router
from filehub.api.routes.health import router as health_router
from filehub.config import Settings, load_settings
from filehub.ledger import JsonlFileLedger, Ledger
from filehub.observability.tracing import configure_tracing
from filehub.services.files import FileService
from filehub.services.uploads import UploadService
from filehub.storage.filesystem_store import FilesystemObjectStore
from filehub.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

EXPOSED_HEADERS = ["Accept-Ranges", "Content-Length", "Content-Range", REQUEST_ID_HEADER]


def create_app(
    settings: Settings | None = None,
    *,
    store: ObjectStore | None = None,
    ledger: Ledger | None = None,
) -> FastAPI:
    """Create and configure the FileHub FastAPI application.

    Middleware ordering (outermost to innermost):
    1. RequestIdMiddleware - ensures request_id is available everywhere
    2. CORSMiddleware - browser access, exposes range headers to players
    3. BodySizeLimitMiddleware - rejects oversized uploads early

    Starlette middleware is added in reverse order (last added = outermost).

    Args:
        settings: Configuration; loaded from the environment if None.
        store: Object store; a FilesystemObjectStore on ``settings.upload_dir``
            if None.
        ledger: Descriptor ledger; a JsonlFileLedger on ``settings.ledger_path``
            if None.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = load_settings()

    if store is None:
        fs_store = FilesystemObjectStore(settings.upload_dir, chunk_size=settings.chunk_size)
        fs_store.purge_stale_uploads()
        store = fs_store

    if ledger is None:
        ledger = JsonlFileLedger(settings.ledger_path)

    app = FastAPI(
        title="FileHub API",
        description="Binary object upload and range-aware retrieval",
        version=__version__,
    )

    app.state.settings = settings
    app.state.upload_service = UploadService(
        store,
        ledger,
        public_base_url=settings.public_base_url,
        max_upload_bytes=settings.max_upload_bytes,
    )
    app.state.file_service = FileService(
        store,
        ledger,
        public_base_url=settings.public_base_url,
    )

    configure_tracing()

    max_body_bytes = None
    if settings.max_upload_bytes is not None:
        max_body_bytes = settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(files_router)

    logger.info(
        "FileHub app created: store=%s max_upload_bytes=%s",
        store.backend_name,
        settings.max_upload_bytes,
    )
    return app
