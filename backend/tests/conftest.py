import pytest
from fastapi.testclient import TestClient

from canvas_upload.core.config import Settings
from canvas_upload.main import create_app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def app_settings(tmp_path):
    public_dir = tmp_path / "public"
    public_dir.mkdir()
    (public_dir / "index.html").write_text("<!DOCTYPE html><title>Upload &amp; Preview</title>")
    (public_dir / "script.js").write_text("console.log('preview');")
    return Settings(
        PUBLIC_DIR=public_dir,
        UPLOAD_DIR=public_dir / "uploads",
        MAX_UPLOAD_SIZE_MB=10,
    )


@pytest.fixture
def app(app_settings):
    return create_app(app_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def make_bytes(size: int) -> bytes:
    """Deterministic non-trivial payload of exactly ``size`` bytes."""
    pattern = bytes(range(256))
    return (pattern * (size // len(pattern) + 1))[:size]
