"""Identity normalization and account lookup helpers."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def normalize_identifier(value: str) -> str:
    """Usernames and emails are stored trimmed and lowercase; lookups must match."""
    return value.strip().lower()


async def find_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    result = await session.execute(select(User).where(_eq(User.id, user_id)))
    return result.scalar_one_or_none()


async def find_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(
        select(User).where(_eq(User.username, normalize_identifier(username)))
    )
    return result.scalar_one_or_none()


async def find_login_user(
    session: AsyncSession,
    *,
    username: str | None = None,
    email: str | None = None,
) -> User | None:
    """Return the user matching ``username`` OR ``email`` (case-insensitive)."""
    clauses: list[ColumnElement[bool]] = []
    if username and username.strip():
        clauses.append(_eq(User.username, normalize_identifier(username)))
    if email and email.strip():
        clauses.append(_eq(User.email, normalize_identifier(email)))
    if not clauses:
        return None

    result = await session.execute(
        select(User)
        .where(or_(*clauses))
        .order_by(cast(Any, User.created_at).asc(), cast(Any, User.id).asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def registration_conflict_exists(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    exclude_user_id: str | None = None,
) -> bool:
    """Return True when another account already owns ``username`` or ``email``."""
    stmt = select(User.id).where(
        or_(
            _eq(User.username, normalize_identifier(username)),
            _eq(User.email, normalize_identifier(email)),
        )
    )
    if exclude_user_id is not None:
        stmt = stmt.where(cast(ColumnElement[bool], User.id != exclude_user_id))
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None
