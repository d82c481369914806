"""Single-slot refresh-token persistence on the user row."""

from __future__ import annotations

import hashlib
import hmac
from typing import Any, cast

from sqlalchemy import CursorResult, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def matches_stored_refresh_token(user: User, token: str) -> bool:
    stored = user.refresh_token_hash
    if not stored:
        return False
    return hmac.compare_digest(stored, hash_refresh_token(token))


def store_refresh_token(user: User, token: str) -> None:
    """Replace whatever refresh token the user had; the old one stops working."""
    user.refresh_token_hash = hash_refresh_token(token)


async def rotate_refresh_token(
    session: AsyncSession,
    *,
    user_id: str,
    presented_token: str,
    new_token: str,
) -> bool:
    """Compare-and-set the stored digest; False means another request won the race."""
    result = await session.execute(
        update(User)
        .where(
            _eq(User.id, user_id),
            _eq(User.refresh_token_hash, hash_refresh_token(presented_token)),
        )
        .values(refresh_token_hash=hash_refresh_token(new_token))
        .execution_options(synchronize_session=False)
    )
    return cast(CursorResult[Any], result).rowcount == 1


async def clear_refresh_token(session: AsyncSession, user_id: str) -> None:
    await session.execute(
        update(User)
        .where(_eq(User.id, user_id))
        .values(refresh_token_hash=None)
        .execution_options(synchronize_session=False)
    )
