"""Business logic services."""

from .images import (
    JPEG_CONTENT_TYPE,
    MAX_IMAGE_DIMENSION,
    UploadTooLargeError,
    process_image_bytes,
    read_upload_file,
)
from .media import MediaUploader, MediaUploadError, StoredMedia
from .storage import (
    build_object_url,
    delete_object,
    ensure_bucket,
    get_minio_client,
    put_object_bytes,
)

__all__ = [
    "get_minio_client",
    "ensure_bucket",
    "delete_object",
    "put_object_bytes",
    "build_object_url",
    "process_image_bytes",
    "read_upload_file",
    "MAX_IMAGE_DIMENSION",
    "JPEG_CONTENT_TYPE",
    "UploadTooLargeError",
    "MediaUploader",
    "MediaUploadError",
    "StoredMedia",
]
