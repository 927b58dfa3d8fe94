"""Application services: upload ingestion and file retrieval."""

from filehub.services.files import FileService, FileStream
from filehub.services.uploads import InvalidUploadError, UploadService

__all__ = ["FileService", "FileStream", "InvalidUploadError", "UploadService"]
