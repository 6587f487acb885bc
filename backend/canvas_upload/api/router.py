from fastapi import APIRouter

from canvas_upload.api.endpoints import pages, upload, files, health

api_router = APIRouter()

api_router.include_router(pages.router, tags=["pages"])
api_router.include_router(upload.router, tags=["upload"])
api_router.include_router(files.router, prefix="/uploads", tags=["files"])
api_router.include_router(health.router, tags=["health"])
