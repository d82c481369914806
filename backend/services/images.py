"""Upload reading and image normalization."""

from __future__ import annotations

from io import BytesIO

from fastapi import UploadFile
from PIL import Image, ImageOps

JPEG_CONTENT_TYPE = "image/jpeg"
MAX_IMAGE_DIMENSION = 2048
READ_CHUNK_SIZE = 64 * 1024
ALLOWED_FORMATS = frozenset({"JPEG", "PNG", "GIF", "WEBP"})
INVALID_IMAGE = "Uploaded file is not a valid image"
_DECODE_ERRORS = (OSError, SyntaxError, Image.DecompressionBombError)


class UploadTooLargeError(ValueError):
    """Raised when an uploaded file exceeds the configured byte limit."""


async def read_upload_file(upload: UploadFile, max_bytes: int) -> bytes:
    """Read an upload in chunks, refusing to buffer more than ``max_bytes``."""
    buffer = bytearray()
    while True:
        chunk = await upload.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise UploadTooLargeError(f"File exceeds the {max_bytes} byte limit")
    if not buffer:
        raise ValueError("Uploaded file is empty")
    return bytes(buffer)


def process_image_bytes(data: bytes) -> tuple[bytes, str]:
    """Validate image bytes and re-encode them as a bounded-size JPEG."""
    try:
        with Image.open(BytesIO(data)) as probe:
            image_format = probe.format
            probe.verify()
    except _DECODE_ERRORS as exc:
        raise ValueError(INVALID_IMAGE) from exc

    if image_format not in ALLOWED_FORMATS:
        raise ValueError(f"Unsupported image format: {image_format}")

    # verify() does not decode pixel data, so truncated files only fail here.
    try:
        with Image.open(BytesIO(data)) as image:
            normalized = ImageOps.exif_transpose(image).convert("RGB")
            normalized.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))
            output = BytesIO()
            normalized.save(output, format="JPEG", quality=85, optimize=True)
    except _DECODE_ERRORS as exc:
        raise ValueError(INVALID_IMAGE) from exc
    return output.getvalue(), JPEG_CONTENT_TYPE
