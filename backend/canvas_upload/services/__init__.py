from canvas_upload.services.admission import AdmissionGate
from canvas_upload.services.storage_service import LocalStorageService, StoredFile
from canvas_upload.services.validation import FileValidator

__all__ = ["AdmissionGate", "LocalStorageService", "StoredFile", "FileValidator"]
