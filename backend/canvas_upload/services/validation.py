from typing import Iterable, Optional

from canvas_upload.core.errors import FileValidationError, SizeLimitExceeded

TYPE_REJECTED_MESSAGE = "Only image files and 3D models are allowed!"


def normalize_mime_type(content_type: Optional[str]) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def has_extension(filename: str, extensions: Iterable[str]) -> bool:
    """True when ``filename`` ends in one of ``extensions``, ignoring case.

    A bare ``.png`` counts: the whole name is matched as a suffix.
    """
    lowered = filename.lower()
    return any(lowered.endswith(f".{ext}") for ext in extensions)


class FileValidator:
    """Accepts a file when its declared mime type OR its extension is allowed.

    Nothing is inferred from the content itself: both signals come from the
    client and are not checked against each other.
    """

    def __init__(
        self,
        allowed_mime_types: Iterable[str],
        allowed_extensions: Iterable[str],
        max_size_mb: int,
    ):
        self.allowed_mime_types = {m.lower() for m in allowed_mime_types}
        self.allowed_extensions = {e.lower().lstrip(".") for e in allowed_extensions}
        self.max_size_mb = max_size_mb

    @property
    def max_size_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024

    def is_allowed_type(self, filename: str, content_type: Optional[str]) -> bool:
        if normalize_mime_type(content_type) in self.allowed_mime_types:
            return True
        return has_extension(filename, self.allowed_extensions)

    def check_size(self, size: Optional[int]) -> None:
        if size is not None and size > self.max_size_bytes:
            raise SizeLimitExceeded(self.max_size_mb)

    def validate(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        size: Optional[int] = None,
    ) -> None:
        if not filename:
            raise FileValidationError("No file uploaded")

        # Size first, so an oversize file is reported as such whatever its type
        self.check_size(size)

        if not self.is_allowed_type(filename, content_type):
            raise FileValidationError(TYPE_REJECTED_MESSAGE)
