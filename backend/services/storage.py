"""MinIO client utilities."""

from __future__ import annotations

from functools import lru_cache
from io import BytesIO

from minio import Minio
from minio.error import S3Error

from core.config import Settings

MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})
EXISTING_BUCKET_CODES = frozenset({"BucketAlreadyOwnedByYou", "BucketAlreadyExists"})


@lru_cache
def _build_client(endpoint: str, access_key: str, secret_key: str, secure: bool) -> Minio:
    return Minio(
        endpoint,
        access_key=access_key,
        secret_key=secret_key,
        secure=secure,
    )


def get_minio_client(settings: Settings) -> Minio:
    """Return a cached MinIO client for the configured endpoint and credentials."""
    return _build_client(
        settings.minio_endpoint,
        settings.minio_access_key,
        settings.minio_secret_key,
        settings.minio_secure,
    )


def ensure_bucket(client: Minio, bucket_name: str) -> None:
    """Ensure the bucket exists."""
    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        if exc.code not in EXISTING_BUCKET_CODES:
            raise


def put_object_bytes(
    client: Minio,
    bucket_name: str,
    object_key: str,
    payload: bytes,
    content_type: str,
) -> None:
    client.put_object(
        bucket_name,
        object_key,
        data=BytesIO(payload),
        length=len(payload),
        content_type=content_type,
    )


def delete_object(client: Minio, bucket_name: str, object_key: str) -> None:
    """Delete an object from the bucket when it exists."""
    try:
        client.remove_object(bucket_name, object_key)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - network call
        if exc.code not in MISSING_OBJECT_CODES:
            raise


def build_object_url(settings: Settings, object_key: str) -> str:
    """Return the public URL clients use to fetch ``object_key``."""
    normalized_key = object_key.strip().lstrip("/")
    if not normalized_key:
        raise ValueError("object_key must not be empty")

    base_url = settings.media_public_base_url.strip().rstrip("/")
    if not base_url:
        scheme = "https" if settings.minio_secure else "http"
        base_url = f"{scheme}://{settings.minio_endpoint}/{settings.minio_bucket}"
    return f"{base_url}/{normalized_key}"
