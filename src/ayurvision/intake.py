"""Image intake: upload validation and preview handles."""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import UploadFile

logger = logging.getLogger(__name__)

PREVIEW_URL_PREFIX = "/api/v1/previews"


class ImageIntakeError(ValueError):
    """An uploaded file that cannot be used for identification."""


def is_image_mime(mime_type: str | None) -> bool:
    return bool(mime_type) and mime_type.lower().startswith("image/")


@dataclass(frozen=True)
class ImageUpload:
    """An accepted image held in memory."""

    filename: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def size_kb(self) -> str:
        return f"{self.size / 1024:.2f} KB"


def accept_image(filename: str | None, mime_type: str | None, data: bytes, max_size: int) -> ImageUpload:
    """Validate raw upload parts and build an ImageUpload.

    Raises:
        ImageIntakeError: For non-image types, empty files, or files above ``max_size``.
    """
    if not is_image_mime(mime_type):
        raise ImageIntakeError(f"Unsupported file type: {mime_type or 'unknown'}. Please select an image.")
    if not data:
        raise ImageIntakeError("The selected file is empty.")
    if len(data) > max_size:
        raise ImageIntakeError(f"The selected image exceeds the {max_size / (1024 * 1024):g} MB limit.")
    return ImageUpload(filename=filename or "image", mime_type=mime_type.lower(), data=data)


async def read_upload(file: UploadFile, max_size: int) -> ImageUpload:
    """Read a multipart upload into memory, enforcing type and size limits."""
    if not is_image_mime(file.content_type):
        raise ImageIntakeError(f"Unsupported file type: {file.content_type or 'unknown'}. Please select an image.")
    try:
        # One byte past the limit is enough to reject without reading everything.
        data = await file.read(max_size + 1)
    except OSError as exc:
        raise ImageIntakeError("Error reading the image file.") from exc
    return accept_image(file.filename, file.content_type, data, max_size)


@dataclass(frozen=True)
class Preview:
    """A displayable handle for a held image."""

    id: str
    mime_type: str

    @property
    def url(self) -> str:
        return f"{PREVIEW_URL_PREFIX}/{self.id}"


class PreviewStore:
    """Holds preview images in memory until released."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._images: dict[str, ImageUpload] = {}

    def create(self, upload: ImageUpload) -> Preview:
        preview_id = secrets.token_urlsafe(16)
        with self._lock:
            self._images[preview_id] = upload
        return Preview(id=preview_id, mime_type=upload.mime_type)

    def get(self, preview_id: str) -> ImageUpload | None:
        with self._lock:
            return self._images.get(preview_id)

    def release(self, preview_id: str) -> None:
        """Drop a preview. Releasing an unknown id is a no-op."""
        with self._lock:
            self._images.pop(preview_id, None)

    def clear(self) -> None:
        with self._lock:
            count = len(self._images)
            self._images.clear()
        if count:
            logger.info("Released %d preview(s)", count)

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)
