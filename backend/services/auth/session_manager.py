"""Login, refresh-token rotation, logout and password changes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import BadRequestError, InternalError, UnauthorizedError
from core.security import (
    MIN_PASSWORD_LENGTH,
    InvalidTokenError,
    TokenCodec,
    TokenIssueError,
    hash_password,
    needs_rehash,
    verify_password,
)
from models import User

from .identity_resolution import find_login_user, find_user_by_id
from .token_store import (
    clear_refresh_token,
    matches_stored_refresh_token,
    rotate_refresh_token,
    store_refresh_token,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class LoginResult:
    user: User
    tokens: TokenPair


class SessionManager:
    """Owns every write to a user's refresh-token slot.

    A user holds at most one accepted refresh token. Login overwrites it,
    refresh swaps it with compare-and-set, logout clears it.
    """

    def __init__(self, codec: TokenCodec) -> None:
        self.codec = codec

    def issue_tokens(self, user: User) -> TokenPair:
        try:
            return TokenPair(
                access_token=self.codec.issue_access_token(user),
                refresh_token=self.codec.issue_refresh_token(user),
            )
        except TokenIssueError as exc:
            logger.exception("Token minting failed", extra={"user_id": user.id})
            raise InternalError("Something went wrong while generating tokens") from exc

    async def login(
        self,
        session: AsyncSession,
        *,
        password: str,
        username: str | None = None,
        email: str | None = None,
    ) -> LoginResult:
        if not (username and username.strip()) and not (email and email.strip()):
            raise BadRequestError("Username or email is required")
        if not password:
            raise BadRequestError("Password is required")

        user = await find_login_user(session, username=username, email=email)
        if user is None:
            logger.info("Login rejected: unknown account")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.info("Login rejected: wrong password", extra={"user_id": user.id})
            raise UnauthorizedError(INVALID_CREDENTIALS)

        tokens = self.issue_tokens(user)
        if needs_rehash(user.password_hash):
            user.password_hash = await asyncio.to_thread(hash_password, password)
        store_refresh_token(user, tokens.refresh_token)
        session.add(user)
        await session.commit()
        await session.refresh(user)

        logger.info("User logged in", extra={"user_id": user.id})
        return LoginResult(user=user, tokens=tokens)

    async def refresh(self, session: AsyncSession, presented_token: str | None) -> TokenPair:
        if not presented_token:
            raise UnauthorizedError("Unauthorized request")

        try:
            claims = self.codec.verify_refresh_token(presented_token)
        except InvalidTokenError as exc:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN) from exc

        user = await find_user_by_id(session, claims["sub"])
        if user is None:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)
        if not matches_stored_refresh_token(user, presented_token):
            logger.warning("Rejected superseded refresh token", extra={"user_id": user.id})
            raise UnauthorizedError("Refresh token is expired or used")

        tokens = self.issue_tokens(user)
        rotated = await rotate_refresh_token(
            session,
            user_id=user.id,
            presented_token=presented_token,
            new_token=tokens.refresh_token,
        )
        if not rotated:
            await session.rollback()
            logger.warning("Lost refresh rotation race", extra={"user_id": user.id})
            raise UnauthorizedError("Refresh token is expired or used")
        await session.commit()

        logger.info("Rotated refresh token", extra={"user_id": user.id})
        return tokens

    async def logout(self, session: AsyncSession, user_id: str) -> None:
        await clear_refresh_token(session, user_id)
        await session.commit()
        logger.info("User logged out", extra={"user_id": user_id})

    async def change_password(
        self,
        session: AsyncSession,
        *,
        user_id: str,
        current_password: str | None,
        new_password: str | None,
    ) -> None:
        """Replace the password hash; issued tokens stay valid until they expire."""
        if not current_password or not new_password:
            raise BadRequestError("Current password and new password are required")
        if current_password == new_password:
            raise BadRequestError("New password must be different from the current password")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise BadRequestError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user = await find_user_by_id(session, user_id)
        if user is None:
            raise UnauthorizedError("Invalid access token")
        if not await asyncio.to_thread(verify_password, current_password, user.password_hash):
            raise BadRequestError("Invalid current password")

        user.password_hash = await asyncio.to_thread(hash_password, new_password)
        session.add(user)
        await session.commit()
        logger.info("Password changed", extra={"user_id": user.id})
