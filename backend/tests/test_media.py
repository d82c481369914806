"""Tests for image normalization and the media uploader."""

from __future__ import annotations

import asyncio
import time
from io import BytesIO

import pytest
from fastapi import UploadFile
from PIL import Image

from core.errors import BadRequestError, PayloadTooLargeError, ServiceUnavailableError
from services.images import (
    MAX_IMAGE_DIMENSION,
    UploadTooLargeError,
    process_image_bytes,
    read_upload_file,
)
from services.media import MediaUploader, MediaUploadError


def _image_bytes(fmt: str, size: tuple[int, int] = (40, 20), mode: str = "RGB") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, color=0).save(buffer, format=fmt)
    return buffer.getvalue()


def _upload(data: bytes, filename: str = "upload.png") -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=filename)


@pytest.mark.parametrize("fmt", ["PNG", "GIF", "WEBP", "JPEG"])
def test_process_image_bytes_outputs_jpeg(fmt):
    mode = "P" if fmt == "GIF" else "RGB"

    output, content_type = process_image_bytes(_image_bytes(fmt, mode=mode))

    assert content_type == "image/jpeg"
    with Image.open(BytesIO(output)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (40, 20)


def test_process_image_bytes_bounds_dimensions():
    output, _ = process_image_bytes(_image_bytes("PNG", size=(MAX_IMAGE_DIMENSION * 2, 10)))

    with Image.open(BytesIO(output)) as decoded:
        assert max(decoded.size) == MAX_IMAGE_DIMENSION


def test_process_image_bytes_rejects_non_images():
    with pytest.raises(ValueError, match="not a valid image"):
        process_image_bytes(b"plain text pretending to be a picture")


def test_process_image_bytes_rejects_unsupported_format():
    with pytest.raises(ValueError, match="Unsupported"):
        process_image_bytes(_image_bytes("BMP"))


def _noisy_jpeg(size: int = 256) -> bytes:
    buffer = BytesIO()
    Image.effect_noise((size, size), 64).convert("RGB").save(buffer, format="JPEG")
    return buffer.getvalue()


def test_process_image_bytes_rejects_truncated_jpeg():
    data = _noisy_jpeg()

    with pytest.raises(ValueError, match="not a valid image"):
        process_image_bytes(data[: len(data) // 2])


def test_process_image_bytes_rejects_decompression_bomb(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    with pytest.raises(ValueError, match="not a valid image"):
        process_image_bytes(_image_bytes("PNG", size=(64, 64)))


@pytest.mark.asyncio
async def test_read_upload_file_enforces_limit():
    with pytest.raises(UploadTooLargeError):
        await read_upload_file(_upload(b"x" * 11), max_bytes=10)


@pytest.mark.asyncio
async def test_read_upload_file_rejects_empty_upload():
    with pytest.raises(ValueError, match="empty"):
        await read_upload_file(_upload(b""), max_bytes=10)


def test_object_keys_are_unique_and_grouped(test_settings, fake_minio):
    uploader = MediaUploader(test_settings, client=fake_minio)

    first = uploader.object_key_for("avatar")
    second = uploader.object_key_for("avatar")

    assert first != second
    assert first.startswith("users/avatars/")
    assert uploader.object_key_for("cover").startswith("users/covers/")


@pytest.mark.asyncio
async def test_upload_image_stores_normalized_jpeg(test_settings, fake_minio):
    uploader = MediaUploader(test_settings, client=fake_minio)

    stored = await uploader.upload_image(_upload(_image_bytes("PNG")), kind="avatar")

    assert "videohub-test" in fake_minio.buckets
    assert stored.url == f"{test_settings.media_public_base_url}/{stored.key}"
    saved = fake_minio.objects[("videohub-test", stored.key)]
    assert saved["content_type"] == "image/jpeg"


@pytest.mark.asyncio
async def test_upload_image_maps_client_errors(test_settings, fake_minio):
    uploader = MediaUploader(test_settings, client=fake_minio)

    with pytest.raises(PayloadTooLargeError):
        await uploader.upload_image(
            _upload(b"x" * (test_settings.upload_max_bytes + 1)), kind="avatar"
        )
    with pytest.raises(BadRequestError):
        await uploader.upload_image(_upload(b"not an image"), kind="avatar")


@pytest.mark.asyncio
async def test_upload_image_wraps_storage_failures(test_settings, fake_minio):
    fake_minio.fail_puts = True
    uploader = MediaUploader(test_settings, client=fake_minio)

    with pytest.raises(MediaUploadError):
        await uploader.upload_image(_upload(_image_bytes("PNG")), kind="cover")


@pytest.mark.asyncio
async def test_upload_image_times_out(test_settings, fake_minio):
    class SlowMinio(type(fake_minio)):
        def put_object(self, *args, **kwargs):
            time.sleep(0.3)
            return super().put_object(*args, **kwargs)

    slow_client = SlowMinio()
    settings = test_settings.model_copy(update={"media_upload_timeout_seconds": 0.05})
    uploader = MediaUploader(settings, client=slow_client)

    with pytest.raises(ServiceUnavailableError):
        await uploader.upload_image(_upload(_image_bytes("PNG")), kind="avatar")

    # The late write still lands and is then deleted in the background.
    for _ in range(40):
        if slow_client.removed:
            break
        await asyncio.sleep(0.05)
    assert len(slow_client.removed) == 1
    assert slow_client.objects == {}


@pytest.mark.asyncio
async def test_remove_is_best_effort(test_settings, fake_minio, caplog):
    class BrokenMinio(type(fake_minio)):
        def remove_object(self, bucket_name, object_name):
            raise RuntimeError("storage offline")

    uploader = MediaUploader(test_settings, client=BrokenMinio())

    await uploader.remove("users/avatars/a.jpg")
    await uploader.remove(None)

    assert "Failed to cleanup media object" in caplog.text
