import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from canvas_upload.api.exception_handlers import AVAILABLE_ROUTES, register_exception_handlers
from canvas_upload.api.router import api_router
from canvas_upload.core.config import Settings, settings
from canvas_upload.core.logger import configure_logging
from canvas_upload.services.admission import AdmissionGate
from canvas_upload.services.storage_service import LocalStorageService
from canvas_upload.services.validation import FileValidator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    app_settings: Settings = app.state.settings
    storage: LocalStorageService = app.state.storage_service
    app_settings.PUBLIC_DIR.mkdir(parents=True, exist_ok=True)
    storage.ensure_directory()

    logger.info(f"{app_settings.PROJECT_NAME} {app_settings.VERSION} started")
    logger.info(f"Serving static files from: {app_settings.PUBLIC_DIR.resolve()}")
    logger.info(f"Uploads saved to: {storage.upload_dir}")
    for route, description in AVAILABLE_ROUTES.items():
        logger.info(f"  {route:<26} {description}")
    yield
    # Shutdown
    logger.info(f"{app_settings.PROJECT_NAME} stopped")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; the admission gate and services live on ``app.state``."""
    app_settings = app_settings or settings
    configure_logging(app_settings.LOG_LEVEL)

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.VERSION,
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.admission_gate = AdmissionGate()
    app.state.file_validator = FileValidator(
        allowed_mime_types=app_settings.ALLOWED_MIME_TYPES,
        allowed_extensions=app_settings.ALLOWED_EXTENSIONS,
        max_size_mb=app_settings.MAX_UPLOAD_SIZE_MB,
    )
    app.state.storage_service = LocalStorageService(
        upload_dir=app_settings.UPLOAD_DIR,
        max_upload_size_mb=app_settings.MAX_UPLOAD_SIZE_MB,
        chunk_size=app_settings.UPLOAD_CHUNK_SIZE,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    # Preview page assets (script.js); the directory is created on startup
    app.mount("/static", StaticFiles(directory=app_settings.PUBLIC_DIR, check_dir=False), name="static")

    return app


app = create_app()


def run() -> None:
    uvicorn.run(
        "canvas_upload.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
