from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from canvas_upload.api.deps import get_storage_service
from canvas_upload.schemas.file import FileListResponse
from canvas_upload.services.storage_service import LocalStorageService

router = APIRouter()


@router.get("", response_model=FileListResponse)
@router.get("/", response_model=FileListResponse, include_in_schema=False)
async def list_uploads(
    storage: Annotated[LocalStorageService, Depends(get_storage_service)],
):
    files = storage.list_files()
    return FileListResponse(count=len(files), files=files)


# `path` so encoded slashes reach the traversal check instead of missing the route
@router.get("/{filename:path}")
async def get_upload(
    filename: str,
    storage: Annotated[LocalStorageService, Depends(get_storage_service)],
):
    return FileResponse(storage.resolve(filename))
