"""Pytest fixtures for the videohub backend."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from io import BytesIO
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio
from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from api.deps import get_media_uploader
from app import create_app
from core.config import Settings
from core.security import hash_password
from models import User
from services.media import MediaUploader

TEST_PASSWORD = "Secr3t!pass"


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    database_url = f"sqlite+aiosqlite:///{db_dir / 'backend-test.db'}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest.fixture()
def test_settings(test_database_url: str) -> Settings:
    return Settings(
        _env_file=None,
        app_env="test",
        database_url=test_database_url,
        access_token_secret="test-access-token-secret-0123456789abcdef",
        refresh_token_secret="test-refresh-token-secret-0123456789abcdef",
        upload_max_bytes=256 * 1024,
        request_body_limit_bytes=4 * 1024,
        minio_bucket="videohub-test",
        media_public_base_url="http://media.test/videohub-test",
        media_upload_timeout_seconds=5,
    )


class FakeMinio:
    """In-memory stand-in for the MinIO client surface the uploader uses."""

    def __init__(self) -> None:
        self.buckets: set[str] = set()
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.removed: list[str] = []
        self.fail_puts = False

    def bucket_exists(self, bucket_name: str) -> bool:
        return bucket_name in self.buckets

    def make_bucket(self, bucket_name: str) -> None:
        self.buckets.add(bucket_name)

    def put_object(self, bucket_name, object_name, data, length, content_type=None):
        if self.fail_puts:
            raise RuntimeError("storage rejected the write")
        self.objects[(bucket_name, object_name)] = {
            "data": data.read(length),
            "content_type": content_type,
        }

    def remove_object(self, bucket_name: str, object_name: str) -> None:
        self.objects.pop((bucket_name, object_name), None)
        self.removed.append(object_name)

    def keys(self) -> list[str]:
        return [key for _, key in self.objects]


@pytest.fixture()
def fake_minio() -> FakeMinio:
    return FakeMinio()


@pytest_asyncio.fixture()
async def app(test_settings: Settings, fake_minio: FakeMinio) -> AsyncIterator[FastAPI]:
    """Create the FastAPI app against the migrated SQLite database and fake storage."""
    application = create_app(test_settings)
    application.dependency_overrides[get_media_uploader] = lambda: MediaUploader(
        test_settings, client=fake_minio
    )
    yield application
    await application.state.engine.dispose()


@pytest.fixture()
def session_maker(app: FastAPI) -> async_sessionmaker[AsyncSession]:
    return app.state.session_maker


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


def _make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (32, 32)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 40, 90)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    return _make_image_bytes()


@pytest.fixture()
def create_user(session_maker) -> Callable[..., Awaitable[User]]:
    """Insert a user row directly, bypassing the upload pipeline."""

    async def _create(
        username: str | None = None,
        *,
        email: str | None = None,
        password: str = TEST_PASSWORD,
        fullname: str = "Test User",
    ) -> User:
        name = username or f"user_{uuid4().hex[:8]}"
        user = User(
            username=name,
            email=email or f"{name}@example.com",
            fullname=fullname,
            password_hash=hash_password(password),
            avatar=f"http://media.test/videohub-test/users/avatars/{name}.jpg",
        )
        async with session_maker() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user

    return _create


@pytest.fixture()
def login(async_client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Log in through the API and return the response ``data`` payload."""

    async def _login(username: str, password: str = TEST_PASSWORD) -> dict[str, Any]:
        response = await async_client.post(
            "/api/v1/users/login",
            json={"username": username, "password": password},
        )
        assert response.status_code == 200, response.text
        return response.json()["data"]

    return _login

