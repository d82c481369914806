"""Tests for MinIO storage helpers."""

from unittest.mock import MagicMock

import pytest

from services import storage


@pytest.fixture(autouse=True)
def _reset_cache():
    storage._build_client.cache_clear()
    yield
    storage._build_client.cache_clear()


class FakeS3Error(Exception):
    def __init__(self, code):
        super().__init__(code)
        self.code = code


def test_get_minio_client_uses_settings(monkeypatch, test_settings):
    mock_client = MagicMock(name="Minio")
    created_clients = []
    settings = test_settings.model_copy(update={"minio_secure": True})

    def fake_minio(endpoint, access_key, secret_key, secure):
        created_clients.append(
            {
                "endpoint": endpoint,
                "access_key": access_key,
                "secret_key": secret_key,
                "secure": secure,
            }
        )
        return mock_client

    monkeypatch.setattr(storage, "Minio", fake_minio)

    client = storage.get_minio_client(settings)
    assert client is mock_client
    assert storage.get_minio_client(settings) is client  # cached

    assert created_clients == [
        {
            "endpoint": settings.minio_endpoint,
            "access_key": settings.minio_access_key,
            "secret_key": settings.minio_secret_key,
            "secure": True,
        }
    ]


def test_ensure_bucket_existing():
    client = MagicMock()
    client.bucket_exists.return_value = True

    storage.ensure_bucket(client, "videohub")

    client.bucket_exists.assert_called_once_with("videohub")
    client.make_bucket.assert_not_called()


def test_ensure_bucket_creates_when_missing():
    client = MagicMock()
    client.bucket_exists.return_value = False

    storage.ensure_bucket(client, "videohub")

    client.make_bucket.assert_called_once_with("videohub")


def test_ensure_bucket_handles_existing_race(monkeypatch):
    client = MagicMock()
    client.bucket_exists.return_value = False
    client.make_bucket.side_effect = FakeS3Error("BucketAlreadyOwnedByYou")
    monkeypatch.setattr(storage, "S3Error", FakeS3Error)

    storage.ensure_bucket(client, "videohub")


def test_delete_object_ignores_missing(monkeypatch):
    client = MagicMock()
    client.remove_object.side_effect = FakeS3Error("NoSuchKey")
    monkeypatch.setattr(storage, "S3Error", FakeS3Error)

    storage.delete_object(client, "videohub", "users/avatars/gone.jpg")

    client.remove_object.assert_called_once_with("videohub", "users/avatars/gone.jpg")


def test_delete_object_propagates_other_errors(monkeypatch):
    client = MagicMock()
    client.remove_object.side_effect = FakeS3Error("AccessDenied")
    monkeypatch.setattr(storage, "S3Error", FakeS3Error)

    with pytest.raises(FakeS3Error):
        storage.delete_object(client, "videohub", "users/avatars/x.jpg")


def test_put_object_bytes_sends_length_and_type():
    client = MagicMock()

    storage.put_object_bytes(client, "videohub", "users/avatars/a.jpg", b"abc", "image/jpeg")

    args, kwargs = client.put_object.call_args
    assert args == ("videohub", "users/avatars/a.jpg")
    assert kwargs["length"] == 3
    assert kwargs["content_type"] == "image/jpeg"
    assert kwargs["data"].read() == b"abc"


def test_build_object_url_prefers_public_base(test_settings):
    settings = test_settings.model_copy(update={"media_public_base_url": "https://cdn.test/media/"})

    assert (
        storage.build_object_url(settings, "/users/avatars/a.jpg")
        == "https://cdn.test/media/users/avatars/a.jpg"
    )


def test_build_object_url_falls_back_to_endpoint(test_settings):
    settings = test_settings.model_copy(
        update={
            "media_public_base_url": "",
            "minio_endpoint": "minio:9000",
            "minio_secure": False,
        }
    )

    assert (
        storage.build_object_url(settings, "users/covers/c.jpg")
        == "http://minio:9000/videohub-test/users/covers/c.jpg"
    )


def test_build_object_url_requires_key(test_settings):
    with pytest.raises(ValueError):
        storage.build_object_url(test_settings, "  ")
