"""FileHub API error handling.

Exception handlers that turn both HTTP-level and domain errors into the shared
error envelope.

Domain error mapping:
- InvalidUploadError               -> 400 INVALID_REQUEST
- PathTraversalError               -> 400 INVALID_KEY
- ObjectNotFoundError              -> 404 NOT_FOUND
- UploadTimeoutError               -> 408 REQUEST_TIMEOUT
- ObjectTooLargeError / body limit -> 413 PAYLOAD_TOO_LARGE
- InvalidRangeError                -> 416 RANGE_NOT_SATISFIABLE
- other ObjectStorageError, LedgerError -> 500 STORAGE_FAILURE
- anything else                    -> 500 INTERNAL_ERROR
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from filehub.api.error_model import get_error_code_for_status, make_error_response
from filehub.api.middleware.body_limit import RequestBodyTooLargeError
from filehub.ledger import LedgerError
from filehub.services.uploads import InvalidUploadError
from filehub.storage.errors import (
    ObjectNotFoundError,
    ObjectStorageError,
    ObjectTooLargeError,
    PathTraversalError,
    UploadTimeoutError,
)
from filehub.storage.ranges import InvalidRangeError

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map standard HTTP exceptions (routing 404/405, multipart 400) to the envelope."""
    assert isinstance(exc, HTTPException)

    code = get_error_code_for_status(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=exc.status_code,
        details=None,
        headers=dict(exc.headers) if exc.headers else None,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map Pydantic validation errors to the envelope without raw internals."""
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def invalid_upload_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, InvalidUploadError)
    return make_error_response(
        request, code="INVALID_REQUEST", message=exc.message, http_status=400
    )


async def invalid_key_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, PathTraversalError)
    logger.warning("Rejected unsafe storage key on %s", request.url.path)
    return make_error_response(
        request, code="INVALID_KEY", message="Invalid file key", http_status=400
    )


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ObjectNotFoundError)
    return make_error_response(
        request, code="NOT_FOUND", message="File not found", http_status=404
    )


async def upload_timeout_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, UploadTimeoutError)
    logger.warning("Upload timed out on %s", request.url.path)
    return make_error_response(
        request, code="REQUEST_TIMEOUT", message="Upload timed out", http_status=408
    )


async def too_large_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ObjectTooLargeError | RequestBodyTooLargeError)
    return make_error_response(
        request,
        code="PAYLOAD_TOO_LARGE",
        message="Upload exceeds the maximum allowed size",
        http_status=413,
        details={"limit_bytes": exc.limit} if exc.limit is not None else None,
    )


async def invalid_range_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer 416 with the object size so clients can retry a valid range."""
    assert isinstance(exc, InvalidRangeError)
    logger.info("Unsatisfiable range %r for %s", exc.header, request.url.path)
    return make_error_response(
        request,
        code="RANGE_NOT_SATISFIABLE",
        message=exc.message,
        http_status=416,
        details={"range": exc.header, "size_bytes": exc.size},
        headers={"Content-Range": f"bytes */{exc.size}", "Accept-Ranges": "bytes"},
    )


async def storage_failure_handler(request: Request, exc: Exception) -> JSONResponse:
    """Storage and ledger failures: log server-side, return a generic 500."""
    request_id = getattr(request.state, "request_id", None)
    logger.error(
        "Storage failure: %s: %s",
        type(exc).__name__,
        exc,
        extra={"request_id": request_id},
    )
    return make_error_response(
        request,
        code="STORAGE_FAILURE",
        message="A storage error occurred",
        http_status=500,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: 500 with a safe message, stack trace only in logs."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id},
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install all exception handlers on ``app``."""
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(InvalidUploadError, invalid_upload_handler)
    app.add_exception_handler(PathTraversalError, invalid_key_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(UploadTimeoutError, upload_timeout_handler)
    app.add_exception_handler(ObjectTooLargeError, too_large_handler)
    app.add_exception_handler(RequestBodyTooLargeError, too_large_handler)
    app.add_exception_handler(InvalidRangeError, invalid_range_handler)
    app.add_exception_handler(ObjectStorageError, storage_failure_handler)
    app.add_exception_handler(LedgerError, storage_failure_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
