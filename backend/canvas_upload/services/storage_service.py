import logging
import os
import re
import secrets
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePath
from typing import Optional

from fastapi import UploadFile

from canvas_upload.core.errors import (
    AccessDenied,
    SizeLimitExceeded,
    StorageError,
    StoredFileNotFound,
)
from canvas_upload.schemas.file import StoredFileEntry

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"
TEMP_PREFIX = ".upload-"
TEMP_SUFFIX = ".part"

_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


def generate_filename(original_name: str, timestamp_ms: Optional[int] = None) -> str:
    """Build ``<ms timestamp>-<random below 1e9><extension>`` for storage.

    Only the extension of the original name survives, case preserved.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    extension = PurePath(original_name).suffix
    if not _SAFE_EXTENSION.match(extension):
        extension = ""
    return f"{timestamp_ms}-{secrets.randbelow(1_000_000_000)}{extension}"


def url_for(filename: str) -> str:
    return f"{URL_PREFIX}/{filename}"


@dataclass
class StoredFile:
    filename: str
    original_name: str
    mime_type: str
    size: int
    path: Path
    created_at: datetime

    @property
    def url(self) -> str:
        return url_for(self.filename)


class LocalStorageService:
    def __init__(
        self,
        upload_dir: Path,
        max_upload_size_mb: int,
        chunk_size: int = 1024 * 1024,
    ):
        self.upload_dir = Path(upload_dir).resolve()
        self.max_upload_size_mb = max_upload_size_mb
        self.chunk_size = chunk_size

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def ensure_directory(self) -> None:
        if not self.upload_dir.exists():
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created uploads directory: {self.upload_dir}")

    async def save_upload(self, upload: UploadFile) -> StoredFile:
        """Stream ``upload`` to disk under a generated name.

        The content goes to a hidden temporary file first and is renamed into
        place once complete, so a failed or oversize upload never shows up
        under its final name.
        """
        original_name = upload.filename or ""
        filename = generate_filename(original_name)
        target = self.upload_dir / filename

        fd, tmp_name = tempfile.mkstemp(
            dir=self.upload_dir, prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX
        )
        tmp_path = Path(tmp_name)
        written = 0
        try:
            with os.fdopen(fd, "wb") as buffer:
                while True:
                    chunk = await upload.read(self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_upload_size_bytes:
                        raise SizeLimitExceeded(self.max_upload_size_mb)
                    buffer.write(chunk)
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

        stats = target.stat()
        logger.info(f"Saved {original_name!r} as {filename} ({stats.st_size} bytes)")

        return StoredFile(
            filename=filename,
            original_name=original_name,
            mime_type=upload.content_type or "application/octet-stream",
            size=stats.st_size,
            path=target,
            created_at=datetime.fromtimestamp(
                getattr(stats, "st_birthtime", stats.st_ctime), tz=timezone.utc
            ),
        )

    def list_files(self) -> list[StoredFileEntry]:
        files = []
        try:
            with os.scandir(self.upload_dir) as it:
                entries = sorted(it, key=lambda entry: entry.name)
            for entry in entries:
                if entry.name.startswith(".") or not entry.is_file():
                    continue
                try:
                    size = entry.stat().st_size
                except FileNotFoundError:
                    # Removed between the scan and the stat
                    continue
                files.append(StoredFileEntry(name=entry.name, url=url_for(entry.name), size=size))
        except OSError as e:
            logger.error(f"Error reading uploads directory {self.upload_dir}: {e}")
            raise StorageError() from e
        return files

    def resolve(self, filename: str) -> Path:
        """Map a requested name to a stored file inside the uploads directory."""
        # No stored name can contain a NUL byte
        if "\x00" in filename:
            raise StoredFileNotFound()

        try:
            candidate = (self.upload_dir / filename).resolve()
        except OSError as e:
            logger.warning(f"Rejected unresolvable file name {filename!r}: {e}")
            raise AccessDenied() from e

        if not candidate.is_relative_to(self.upload_dir):
            logger.warning(f"Blocked path traversal attempt: {filename!r}")
            raise AccessDenied()

        if (
            candidate == self.upload_dir
            or candidate.name.startswith(".")
            or not candidate.is_file()
        ):
            raise StoredFileNotFound()

        return candidate
