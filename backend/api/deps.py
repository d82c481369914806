"""FastAPI dependencies wiring settings, the database session and services."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.security import TokenCodec
from db.session import get_session
from models import User
from services.auth import RequestAuthenticator, SessionManager
from services.media import MediaUploader


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async for session in get_session(request.app.state.session_maker):
        yield session


def get_token_codec(settings: Settings = Depends(get_settings)) -> TokenCodec:
    return TokenCodec(settings)


def get_session_manager(codec: TokenCodec = Depends(get_token_codec)) -> SessionManager:
    return SessionManager(codec)


def get_authenticator(codec: TokenCodec = Depends(get_token_codec)) -> RequestAuthenticator:
    return RequestAuthenticator(codec)


def get_media_uploader(settings: Settings = Depends(get_settings)) -> MediaUploader:
    return MediaUploader(settings)


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db),
    authenticator: RequestAuthenticator = Depends(get_authenticator),
) -> User:
    """Reject the request unless it carries a valid access token for a live user."""
    return await authenticator.authenticate(request, session)
