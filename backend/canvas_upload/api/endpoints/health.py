from typing import Annotated

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from canvas_upload.api.deps import get_storage_service
from canvas_upload.core.utils import isoformat_utc
from canvas_upload.schemas.file import HealthResponse
from canvas_upload.services.storage_service import LocalStorageService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    storage: Annotated[LocalStorageService, Depends(get_storage_service)],
):
    return HealthResponse(timestamp=isoformat_utc(), uploads_dir=str(storage.upload_dir))


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
