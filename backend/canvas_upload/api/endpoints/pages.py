from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from canvas_upload.api.deps import get_app_settings
from canvas_upload.core.config import Settings
from canvas_upload.core.errors import StoredFileNotFound

router = APIRouter()


@router.get("/", include_in_schema=False)
async def index(app_settings: Annotated[Settings, Depends(get_app_settings)]):
    """Serve the upload and preview page."""
    index_path = app_settings.PUBLIC_DIR / "index.html"
    if not index_path.is_file():
        raise StoredFileNotFound("Landing page not found")
    return FileResponse(index_path)
