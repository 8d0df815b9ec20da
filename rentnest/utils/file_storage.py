"""
utils/file_storage.py

Blob storage for property photos. ``LocalBlobStore`` writes to MEDIA_ROOT and
returns URLs served by the /media static mount. Any object with the same
``upload`` / ``delete`` coroutines (S3, Cloudinary, ...) can be swapped in via
the ``get_blob_store`` dependency without touching the listing service.
"""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile
from loguru import logger

from rentnest.core.config import settings
from rentnest.core.exceptions import ValidationError

PROPERTY_IMAGES_FOLDER = "properties"

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
MAX_IMAGE_SIZE_BYTES = settings.MAX_IMAGE_SIZE_MB * 1024 * 1024

# Map file extensions → canonical content type
_EXT_TO_CONTENT_TYPE = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

_CONTENT_TYPE_TO_EXT = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


@dataclass
class ImageUpload:
    """An image read from the request, validated but not yet stored."""
    filename: str
    content_type: str
    extension: str
    data: bytes


@dataclass
class StoredBlob:
    url: str


def resolve_image_type(filename: Optional[str], content_type: Optional[str]) -> tuple[str, str]:
    """
    Return (content_type, extension) for an uploaded file.

    iOS / some Android clients send 'application/octet-stream' instead of the
    real MIME type, so we fall back to inspecting the filename extension.
    Raises ValidationError if the type cannot be determined or is not allowed.
    """
    content_type = (content_type or "").lower()

    if content_type in ALLOWED_IMAGE_TYPES:
        return content_type, _CONTENT_TYPE_TO_EXT[content_type]

    filename = filename or ""
    ext = Path(filename).suffix.lower()
    if ext in ALLOWED_EXTENSIONS:
        return _EXT_TO_CONTENT_TYPE[ext], ext if ext != ".jpeg" else ".jpg"

    raise ValidationError(
        f"Cannot determine image type for '{filename}' "
        f"(content-type: '{content_type}'). "
        "Please upload a JPEG, PNG, or WebP image."
    )


def build_image_upload(filename: Optional[str], content_type: Optional[str], data: bytes) -> ImageUpload:
    resolved_type, ext = resolve_image_type(filename, content_type)
    if not data:
        raise ValidationError(f"Image '{filename}' is empty.")
    if len(data) > MAX_IMAGE_SIZE_BYTES:
        raise ValidationError(f"Image '{filename}' exceeds {settings.MAX_IMAGE_SIZE_MB}MB limit.")
    return ImageUpload(filename=filename or "", content_type=resolved_type, extension=ext, data=data)


async def read_image_uploads(files: list[UploadFile]) -> list[ImageUpload]:
    """Read and validate every uploaded file before anything is stored."""
    uploads = []
    for f in files:
        contents = await f.read()
        uploads.append(build_image_upload(f.filename, f.content_type, contents))
    return uploads


class LocalBlobStore:
    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    async def upload(self, data: bytes, folder: str, extension: str = "", content_type: Optional[str] = None) -> StoredBlob:
        target_dir = self.root / folder
        target_dir.mkdir(parents=True, exist_ok=True)

        filename = f"{uuid.uuid4().hex}{extension}"
        async with aiofiles.open(target_dir / filename, "wb") as out:
            await out.write(data)

        return StoredBlob(url=f"{self.base_url}/media/{folder}/{filename}")

    async def delete(self, url: str) -> None:
        marker = "/media/"
        if marker not in url:
            logger.warning(f"Refusing to delete blob outside media root: {url}")
            return
        relative = url.split(marker, 1)[1]
        file_path = (self.root / relative).resolve()
        if self.root.resolve() not in file_path.parents:
            logger.warning(f"Refusing to delete blob outside media root: {url}")
            return
        if file_path.exists():
            await aiofiles.os.remove(file_path)


blob_store = LocalBlobStore(settings.MEDIA_ROOT, settings.BASE_URL)


def get_blob_store() -> LocalBlobStore:
    return blob_store
