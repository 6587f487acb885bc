from typing import Optional

from fastapi import status


class UploadServiceError(Exception):
    """Base error carrying the HTTP status and a message safe to show clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AdmissionConflict(UploadServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Upload already in progress. Please wait."

    def __init__(self, client_id: str, message: Optional[str] = None):
        self.client_id = client_id
        super().__init__(message)


class FileValidationError(UploadServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "No file uploaded or invalid file type"


class SizeLimitExceeded(FileValidationError):
    message = "File too large."

    def __init__(self, max_size_mb: int):
        self.max_size_mb = max_size_mb
        super().__init__(f"File too large. Maximum size is {max_size_mb}MB.")


class StoredFileNotFound(UploadServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "File not found"


class AccessDenied(UploadServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Access denied"


class StorageError(UploadServiceError):
    message = "Failed to read uploads directory"
