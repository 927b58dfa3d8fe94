"""FastAPI dependencies resolving services from application state."""

from fastapi import Request

from filehub.config import Settings
from filehub.services.files import FileService
from filehub.services.uploads import UploadService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service
