import logging
import time
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from canvas_upload.api.deps import (
    get_admission_gate,
    get_client_id,
    get_file_validator,
    get_storage_service,
)
from canvas_upload.core.errors import AdmissionConflict, FileValidationError, SizeLimitExceeded
from canvas_upload.core.metrics import UPLOAD_COUNT, UPLOAD_DURATION
from canvas_upload.core.utils import isoformat_utc
from canvas_upload.schemas.file import UploadResult
from canvas_upload.services.admission import AdmissionGate
from canvas_upload.services.storage_service import LocalStorageService
from canvas_upload.services.validation import FileValidator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=UploadResult)
async def upload_file(
    request: Request,
    gate: Annotated[AdmissionGate, Depends(get_admission_gate)],
    storage: Annotated[LocalStorageService, Depends(get_storage_service)],
    validator: Annotated[FileValidator, Depends(get_file_validator)],
    client_id: Annotated[str, Depends(get_client_id)],
    file: Optional[UploadFile] = File(None),
):
    """Store a single uploaded file and return its metadata."""
    started = time.perf_counter()
    user_agent = (request.headers.get("user-agent") or "")[:50]
    logger.info(
        f"New upload request: {request.method} {request.url.path} "
        f"from {client_id} (User-Agent: {user_agent})"
    )

    try:
        with gate.hold(client_id):
            if file is None:
                raise FileValidationError("No file uploaded")
            validator.validate(file.filename, file.content_type, file.size)
            stored = await storage.save_upload(file)
    except AdmissionConflict:
        logger.warning(f"Duplicate upload detected from {client_id}")
        UPLOAD_COUNT.labels(outcome="conflict").inc()
        raise
    except SizeLimitExceeded as e:
        logger.warning(f"Upload from {client_id} rejected: {e.message}")
        UPLOAD_COUNT.labels(outcome="too_large").inc()
        raise
    except FileValidationError as e:
        logger.warning(f"Upload from {client_id} rejected: {e.message}")
        UPLOAD_COUNT.labels(outcome="invalid").inc()
        raise
    except Exception:
        UPLOAD_COUNT.labels(outcome="error").inc()
        raise
    finally:
        elapsed = time.perf_counter() - started
        UPLOAD_DURATION.observe(elapsed)

    UPLOAD_COUNT.labels(outcome="success").inc()

    logger.info(
        f"Upload completed: {stored.original_name} -> {stored.filename}, "
        f"{stored.size / 1024 / 1024:.2f} MB, {stored.mime_type}, "
        f"path {stored.path}, created {stored.created_at.isoformat()}"
    )

    return UploadResult(
        filename=stored.filename,
        original_name=stored.original_name,
        size=stored.size,
        mimetype=stored.mime_type,
        url=stored.url,
        uploaded_at=isoformat_utc(),
        upload_time=f"{int(elapsed * 1000)}ms",
    )
