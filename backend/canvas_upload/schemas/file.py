from pydantic import BaseModel, Field


class UploadResult(BaseModel):
    success: bool = True
    filename: str
    original_name: str = Field(alias="originalName")
    size: int
    mimetype: str
    url: str
    uploaded_at: str = Field(alias="uploadedAt")
    upload_time: str = Field(alias="uploadTime")

    class Config:
        populate_by_name = True


class StoredFileEntry(BaseModel):
    name: str
    url: str
    size: int


class FileListResponse(BaseModel):
    success: bool = True
    count: int
    files: list[StoredFileEntry]


class HealthResponse(BaseModel):
    status: str = "OK"
    timestamp: str
    uploads_dir: str = Field(alias="uploadsDir")

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
