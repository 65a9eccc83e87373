"""Package photo uploads: validate, stage in the uploads dir, rename once the tracking number is known."""
from __future__ import annotations

import io
import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": {"JPEG", "MPO"},
    "image/png": {"PNG"},
    "image/gif": {"GIF"},
    "image/webp": {"WEBP"},
}
# extensions a client may use for each Pillow format; the first one is the fallback
FORMAT_EXTENSIONS = {
    "JPEG": (".jpg", ".jpeg", ".jpe"),
    "MPO": (".jpg", ".jpeg"),
    "PNG": (".png",),
    "GIF": (".gif",),
    "WEBP": (".webp",),
}


class UploadRejectedError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class StagedUpload:
    path: Path
    extension: str


def photo_extension(filename: str | None, image_format: str) -> str:
    """Client extension when it fits the detected format (case kept), else the format's own."""
    allowed = FORMAT_EXTENSIONS[image_format]
    suffix = Path(filename or "").suffix
    return suffix if suffix.lower() in allowed else allowed[0]


class UploadService:
    def __init__(self, uploads_dir: Path, max_bytes: int) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.max_bytes = max_bytes

    def _detect_format(self, data: bytes, content_type: str) -> str:
        try:
            with Image.open(io.BytesIO(data)) as image:
                fmt = image.format
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
            raise UploadRejectedError("Invalid image file") from exc
        if fmt not in ALLOWED_IMAGE_TYPES[content_type]:
            raise UploadRejectedError("Image content does not match its type")
        return fmt

    def stage(self, upload: Optional[UploadFile]) -> Optional[StagedUpload]:
        """Blocking; call from a sync handler so it runs in the thread pool."""
        if upload is None or not upload.filename:
            return None
        content_type = (upload.content_type or "").lower()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise UploadRejectedError("Invalid file type. Only images are allowed.")
        upload.file.seek(0)
        data = upload.file.read(self.max_bytes + 1)
        if not data:
            raise UploadRejectedError("Empty image")
        if len(data) > self.max_bytes:
            raise UploadRejectedError("Image too large")
        fmt = self._detect_format(data, content_type)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        tmp = self.uploads_dir / f".upload-{secrets.token_hex(8)}.part"
        tmp.write_bytes(data)
        return StagedUpload(path=tmp, extension=photo_extension(upload.filename, fmt))

    def commit(self, staged: StagedUpload, tracking_number: str) -> str:
        filename = f"{tracking_number}{staged.extension}"
        os.replace(staged.path, self.uploads_dir / filename)
        logger.info("Stored photo %s", filename)
        return filename

    def discard(self, staged: Optional[StagedUpload]) -> None:
        if staged is None:
            return
        try:
            staged.path.unlink()
        except FileNotFoundError:
            pass
