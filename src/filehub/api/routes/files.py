"""File routes.

Endpoints:
- POST /upload              store one multipart file plus scalar fields
- GET /files                list stored objects
- GET /files/{key}          stream object bytes, honoring Range
- GET /files/{key}/meta     descriptor for one object
- DELETE /files/{key}       delete object and descriptor
- GET /owners/{owner}/files descriptors uploaded by one owner
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile
from starlette.types import Receive, Scope, Send

from filehub.api.dependencies import get_file_service, get_settings, get_upload_service
from filehub.config import Settings
from filehub.ledger import FileDescriptor
from filehub.services.files import FileService, FileStream
from filehub.services.uploads import InvalidUploadError, UploadService
from filehub.storage.errors import UploadTimeoutError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])

FILE_FIELD = "file"


class FileDescriptorResponse(BaseModel):
    """FileDescriptor as returned to clients."""

    key: str
    original_name: str
    size_bytes: int
    content_type: str
    url: str
    owner: str
    created_at: str
    sha256: str | None = None
    fields: dict[str, str] = {}

    @classmethod
    def from_descriptor(cls, descriptor: FileDescriptor) -> FileDescriptorResponse:
        return cls(**descriptor.to_dict())


class FileStreamResponse(StreamingResponse):
    """StreamingResponse that releases the opened object however the response ends.

    Starlette leaves a sync body iterator open when the client disconnects
    mid-stream; closing it here frees the file handle immediately.
    """

    def __init__(self, stream: FileStream, **kwargs: Any) -> None:
        super().__init__(stream.body, **kwargs)
        self._file_stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self._file_stream.close()


class UploadResponse(BaseModel):
    """Response body for POST /upload."""

    message: str
    file: FileDescriptorResponse


class DeleteResponse(BaseModel):
    """Response body for DELETE /files/{key}."""

    message: str
    key: str


async def _read_form(request: Request) -> FormData:
    # max_files=1: a second file part is rejected by the parser with 400.
    return await request.form(max_files=1)


def _split_form(form: FormData) -> tuple[UploadFile | None, dict[str, str]]:
    """Separate the file part from scalar fields.

    Raises:
        InvalidUploadError: If ``file`` is sent as a plain value.
    """
    upload: UploadFile | None = None
    fields: dict[str, str] = {}

    for name, value in form.multi_items():
        if name == FILE_FIELD:
            if not isinstance(value, UploadFile):
                raise InvalidUploadError("Form field 'file' must be a file upload")
            upload = value
        elif isinstance(value, str):
            fields[name] = value

    return upload, fields


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    request: Request,
    uploads: Annotated[UploadService, Depends(get_upload_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UploadResponse:
    """Accept a multipart upload with one ``file`` part.

    Multipart parsing is bounded by the request timeout; the copy into
    storage runs in the threadpool against the same deadline.
    """
    timeout = settings.request_timeout_seconds
    deadline = time.monotonic() + timeout if timeout else None

    try:
        form = await asyncio.wait_for(_read_form(request), timeout=timeout)
    except TimeoutError as e:
        raise UploadTimeoutError() from e

    try:
        upload, fields = _split_form(form)
        if upload is None:
            raise InvalidUploadError("No file uploaded")

        descriptor = await run_in_threadpool(
            uploads.receive,
            upload.file,
            upload.filename,
            fields,
            deadline=deadline,
        )
    finally:
        await form.close()

    return UploadResponse(
        message="File uploaded successfully",
        file=FileDescriptorResponse.from_descriptor(descriptor),
    )


@router.get("/files", response_model=list[FileDescriptorResponse])
def list_files(
    files: Annotated[FileService, Depends(get_file_service)],
) -> list[FileDescriptorResponse]:
    """List every stored object in store enumeration order."""
    return [FileDescriptorResponse.from_descriptor(d) for d in files.list_files()]


@router.get("/files/{key}")
def download_file(
    key: str,
    request: Request,
    files: Annotated[FileService, Depends(get_file_service)],
) -> FileStreamResponse:
    """Stream an object, whole (200) or a single byte range (206).

    The body is read in bounded chunks; the object is never loaded whole.
    """
    stream = files.open(key, request.headers.get("range"))

    headers: dict[str, Any] = {
        "Accept-Ranges": "bytes",
        "Content-Length": str(stream.content_length),
    }
    status_code = 200
    if stream.byte_range is not None:
        headers["Content-Range"] = stream.byte_range.content_range
        status_code = 206

    return FileStreamResponse(
        stream,
        status_code=status_code,
        media_type=stream.content_type,
        headers=headers,
    )


@router.get("/files/{key}/meta", response_model=FileDescriptorResponse)
def get_file_meta(
    key: str,
    files: Annotated[FileService, Depends(get_file_service)],
) -> FileDescriptorResponse:
    """Return the descriptor of one stored object."""
    return FileDescriptorResponse.from_descriptor(files.get_descriptor(key))


@router.delete("/files/{key}", response_model=DeleteResponse)
def delete_file(
    key: str,
    files: Annotated[FileService, Depends(get_file_service)],
) -> DeleteResponse:
    """Delete an object and its descriptor."""
    files.delete(key)
    return DeleteResponse(message="File deleted successfully", key=key)


@router.get("/owners/{owner}/files", response_model=list[FileDescriptorResponse])
def list_owner_files(
    owner: str,
    files: Annotated[FileService, Depends(get_file_service)],
) -> list[FileDescriptorResponse]:
    """List descriptors uploaded by one owner."""
    return [FileDescriptorResponse.from_descriptor(d) for d in files.list_owner_files(owner)]
