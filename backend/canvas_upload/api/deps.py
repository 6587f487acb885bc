from fastapi import Request

from canvas_upload.core.config import Settings
from canvas_upload.services.admission import AdmissionGate
from canvas_upload.services.storage_service import LocalStorageService
from canvas_upload.services.validation import FileValidator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_admission_gate(request: Request) -> AdmissionGate:
    return request.app.state.admission_gate


def get_storage_service(request: Request) -> LocalStorageService:
    return request.app.state.storage_service


def get_file_validator(request: Request) -> FileValidator:
    return request.app.state.file_validator


def get_client_id(request: Request) -> str:
    # Raw network address; no proxy headers are trusted
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
