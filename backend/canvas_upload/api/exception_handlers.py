import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from canvas_upload.core.errors import UploadServiceError
from canvas_upload.schemas.file import ErrorResponse

logger = logging.getLogger(__name__)

AVAILABLE_ROUTES = {
    "GET /": "Serve main page",
    "POST /upload": "Upload files",
    "GET /uploads": "List uploaded files",
    "GET /uploads/{filename}": "Download an uploaded file",
    "GET /health": "Health check",
    "GET /metrics": "Prometheus metrics",
}


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    content = ErrorResponse(error=message).model_dump()
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def upload_service_error_handler(request: Request, exc: UploadServiceError):
    if exc.status_code >= 500:
        logger.error(f"Server error on {request.method} {request.url.path}: {exc!r}", exc_info=exc.__cause__)
    return error_response(exc.status_code, exc.message)


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, f"Upload error: {detail}")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        logger.info(f"404: {request.method} {request.url.path}")
        return error_response(
            exc.status_code,
            f"Route {request.url.path} not found",
            available=AVAILABLE_ROUTES,
        )
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        logger.info(f"405: Method {request.method} not allowed for {request.url.path}")
        allow = (exc.headers or {}).get("Allow", "")
        return error_response(
            exc.status_code,
            f"Method {request.method} not allowed for {request.url.path}",
            allowedMethods=[m.strip() for m in allow.split(",") if m.strip()],
        )
    return error_response(exc.status_code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UploadServiceError, upload_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
