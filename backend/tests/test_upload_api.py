import re

import anyio
import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from canvas_upload.main import create_app

from conftest import make_bytes

MB = 1024 * 1024
TEST_CLIENT_ID = "testclient"


def upload(client, filename="photo.png", data=b"\x89PNG\r\n\x1a\n", content_type="image/png"):
    return client.post("/upload", files={"file": (filename, data, content_type)})


def test_upload_png_round_trip(client):
    data = make_bytes(2 * MB)

    response = upload(client, "photo.png", data, "image/png")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert re.fullmatch(r"\d+-\d+\.png", body["filename"])
    assert body["originalName"] == "photo.png"
    assert body["size"] == 2097152
    assert body["mimetype"] == "image/png"
    assert body["url"] == f"/uploads/{body['filename']}"
    assert body["uploadedAt"].endswith("Z")
    assert re.fullmatch(r"\d+ms", body["uploadTime"])

    fetched = client.get(body["url"])
    assert fetched.status_code == 200
    assert fetched.content == data
    assert fetched.headers["content-type"] == "image/png"


def test_upload_accepts_allowed_extension_with_unlisted_mime_type(client):
    response = upload(client, "scene.GLB", b"glTF\x02\x00\x00\x00", "application/octet-stream")

    assert response.status_code == 200
    assert response.json()["filename"].endswith(".GLB")


def test_upload_accepts_listed_mime_type_with_unlisted_extension(client):
    response = upload(client, "snapshot.bin", b"RIFF....WEBP", "image/webp")

    assert response.status_code == 200
    assert response.json()["filename"].endswith(".bin")


def test_upload_rejects_unlisted_type(client, app):
    response = upload(client, "notes.txt", b"hello", "text/plain")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Only image files and 3D models are allowed!"}
    assert client.get("/uploads").json()["count"] == 0
    assert len(app.state.admission_gate) == 0


def test_upload_without_file(client, app):
    response = client.post("/upload", data={"comment": "forgot the file"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No file uploaded"}
    assert len(app.state.admission_gate) == 0


@pytest.mark.parametrize(
    "filename, content_type",
    [("huge.png", "image/png"), ("huge.txt", "text/plain")],
)
def test_upload_rejects_oversize_file_regardless_of_type(client, app, filename, content_type):
    response = upload(client, filename, make_bytes(10 * MB + 1), content_type)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "File too large. Maximum size is 10MB."}
    assert list(app.state.storage_service.upload_dir.iterdir()) == []
    assert len(app.state.admission_gate) == 0


def test_upload_accepts_file_at_size_limit(client):
    response = upload(client, "limit.png", make_bytes(10 * MB), "image/png")

    assert response.status_code == 200
    assert response.json()["size"] == 10 * MB


def test_duplicate_upload_rejected_while_first_in_flight(client, app):
    gate = app.state.admission_gate
    gate.acquire(TEST_CLIENT_ID)

    response = upload(client)

    assert response.status_code == 429
    assert response.json() == {"success": False, "error": "Upload already in progress. Please wait."}
    assert gate.is_active(TEST_CLIENT_ID)
    assert client.get("/uploads").json()["count"] == 0

    gate.release(TEST_CLIENT_ID)
    assert upload(client).status_code == 200


def test_gate_released_after_unexpected_storage_failure(app, monkeypatch):
    async def failing_save(upload_file):
        raise OSError("No space left on device")

    monkeypatch.setattr(app.state.storage_service, "save_upload", failing_save)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = upload(client)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
    assert len(app.state.admission_gate) == 0


@pytest.mark.anyio
async def test_overlapping_uploads_from_same_client(app, monkeypatch):
    storage = app.state.storage_service
    storage.ensure_directory()
    gate = app.state.admission_gate
    started = anyio.Event()
    proceed = anyio.Event()
    original_save = storage.save_upload

    async def slow_save(upload_file):
        started.set()
        await proceed.wait()
        return await original_save(upload_file)

    monkeypatch.setattr(storage, "save_upload", slow_save)

    def files():
        return {"file": ("photo.png", make_bytes(4096), "image/png")}

    responses = {}
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:

        async def first_upload():
            responses["first"] = await client.post("/upload", files=files())

        async with anyio.create_task_group() as tg:
            tg.start_soon(first_upload)
            await started.wait()
            responses["second"] = await client.post("/upload", files=files())
            proceed.set()

        assert responses["first"].status_code == 200
        assert responses["second"].status_code == 429
        assert len(gate) == 0

        third = await client.post("/upload", files=files())
        assert third.status_code == 200

        listing = (await client.get("/uploads")).json()
        assert listing["count"] == 2


def test_list_uploads_after_several_uploads(client):
    sizes = [1, 1024, 70000]
    uploaded = {}
    for index, size in enumerate(sizes):
        body = upload(client, f"file{index}.jpg", make_bytes(size), "image/jpeg").json()
        uploaded[body["filename"]] = size

    response = client.get("/uploads")

    assert response.status_code == 200
    listing = response.json()
    assert listing["success"] is True
    assert listing["count"] == len(sizes)
    assert {entry["name"]: entry["size"] for entry in listing["files"]} == uploaded
    for entry in listing["files"]:
        assert entry["url"] == f"/uploads/{entry['name']}"


def test_list_uploads_empty(client):
    assert client.get("/uploads").json() == {"success": True, "count": 0, "files": []}


@pytest.mark.parametrize(
    "path",
    [
        "/uploads/..%2f..%2fetc%2fpasswd",
        "/uploads/..%2findex.html",
        "/uploads/%2Fetc%2Fpasswd",
    ],
)
def test_retrieval_blocks_path_traversal(client, path):
    response = client.get(path)

    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Access denied"}


def test_retrieval_of_missing_file(client):
    response = client.get("/uploads/1700000000000-1.png")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "File not found"}


def test_health(client, app):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["uploadsDir"] == str(app.state.storage_service.upload_dir)
    assert body["timestamp"].endswith("Z")


def test_landing_page_and_static_assets(client):
    page = client.get("/")
    assert page.status_code == 200
    assert "Upload &amp; Preview" in page.text

    script = client.get("/static/script.js")
    assert script.status_code == 200


def test_landing_page_missing(app, app_settings):
    (app_settings.PUBLIC_DIR / "index.html").unlink()

    with TestClient(app) as client:
        response = client.get("/")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_unmatched_route_lists_available_routes(client):
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Route /does-not-exist not found"
    assert "POST /upload" in body["available"]


def test_wrong_method_on_known_route(client):
    response = client.delete("/upload")

    assert response.status_code == 405
    body = response.json()
    assert body["error"] == "Method DELETE not allowed for /upload"
    assert body["allowedMethods"] == ["POST"]


def test_metrics_count_upload_outcomes(client):
    upload(client)
    upload(client, "notes.txt", b"hello", "text/plain")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert 'uploads_total{outcome="success"}' in response.text
    assert 'uploads_total{outcome="invalid"}' in response.text


def test_startup_creates_upload_directory(app_settings):
    app_settings.UPLOAD_DIR = app_settings.PUBLIC_DIR / "nested" / "uploads"
    app = create_app(app_settings)
    assert not app_settings.UPLOAD_DIR.exists()

    with TestClient(app):
        assert app_settings.UPLOAD_DIR.is_dir()


def test_upload_accepts_bare_extension_name(client):
    response = upload(client, ".png", b"\x89PNG\r\n\x1a\n", "application/octet-stream")

    assert response.status_code == 200
    body = response.json()
    assert body["originalName"] == ".png"
    assert re.fullmatch(r"\d+-\d+", body["filename"])
    assert client.get(body["url"]).content == b"\x89PNG\r\n\x1a\n"


def test_list_uploads_with_trailing_slash(client):
    upload(client)

    response = client.get("/uploads/")

    assert response.status_code == 200
    assert response.json()["count"] == 1


def test_retrieval_of_name_with_nul_byte(client):
    response = client.get("/uploads/a%00b.png")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "File not found"}


def test_upload_duration_observed_for_rejected_uploads(client):
    before = REGISTRY.get_sample_value("upload_duration_seconds_count") or 0.0

    upload(client, "notes.txt", b"hello", "text/plain")
    upload(client)

    assert REGISTRY.get_sample_value("upload_duration_seconds_count") == before + 2


def test_image_sent_with_generic_mime_type_is_served_as_image(client):
    response = upload(client, "photo.jpg", b"\xff\xd8\xff\xe0", "application/octet-stream")

    assert response.status_code == 200
    body = response.json()
    assert body["mimetype"] == "application/octet-stream"
    assert body["filename"].endswith(".jpg")

    fetched = client.get(body["url"])
    assert fetched.headers["content-type"] == "image/jpeg"
    assert fetched.content == b"\xff\xd8\xff\xe0"
