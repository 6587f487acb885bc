from pydantic_settings import BaseSettings
from pathlib import Path
from functools import lru_cache


class Settings(BaseSettings):
    PROJECT_NAME: str = "Canvas Upload Service"
    VERSION: str = "1.0.0"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Static files and storage
    PUBLIC_DIR: Path = Path("public")
    UPLOAD_DIR: Path = Path("public/uploads")

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"

    # File upload limits
    MAX_UPLOAD_SIZE_MB: int = 10
    UPLOAD_CHUNK_SIZE: int = 1024 * 1024
    ALLOWED_MIME_TYPES: list[str] = [
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "model/gltf",
        "model/glb",
        "model/obj",
    ]
    ALLOWED_EXTENSIONS: list[str] = [
        "jpg",
        "jpeg",
        "png",
        "gif",
        "webp",
        "gltf",
        "glb",
        "obj",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
