"""Channel lookups and subscriber relationships."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core.errors import BadRequestError, NotFoundError
from db.errors import is_unique_violation
from models import Subscription, User

from .auth.identity_resolution import find_user_by_username


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(slots=True)
class ChannelProfile:
    channel: User
    subscribers_count: int
    subscribed_to_count: int
    is_subscribed: bool


async def _require_channel(session: AsyncSession, username: str) -> User:
    if not username or not username.strip():
        raise BadRequestError("Username is missing")
    channel = await find_user_by_username(session, username)
    if channel is None:
        raise NotFoundError("Channel does not exist")
    return channel


async def _count(session: AsyncSession, condition: ColumnElement[bool]) -> int:
    result = await session.execute(
        select(func.count()).select_from(Subscription).where(condition)
    )
    return int(result.scalar_one())


async def is_subscribed(
    session: AsyncSession,
    *,
    subscriber_id: str,
    channel_id: str,
) -> bool:
    result = await session.execute(
        select(Subscription).where(
            _eq(Subscription.subscriber_id, subscriber_id),
            _eq(Subscription.channel_id, channel_id),
        )
    )
    return result.scalar_one_or_none() is not None


async def get_channel_profile(
    session: AsyncSession,
    *,
    username: str,
    viewer_id: str,
) -> ChannelProfile:
    channel = await _require_channel(session, username)
    return ChannelProfile(
        channel=channel,
        subscribers_count=await _count(session, _eq(Subscription.channel_id, channel.id)),
        subscribed_to_count=await _count(session, _eq(Subscription.subscriber_id, channel.id)),
        is_subscribed=await is_subscribed(
            session,
            subscriber_id=viewer_id,
            channel_id=channel.id,
        ),
    )


async def subscribe(
    session: AsyncSession,
    *,
    subscriber_id: str,
    username: str,
) -> bool:
    """Subscribe to a channel; returns False when already subscribed."""
    channel = await _require_channel(session, username)
    if channel.id == subscriber_id:
        raise BadRequestError("Cannot subscribe to your own channel")
    if await is_subscribed(session, subscriber_id=subscriber_id, channel_id=channel.id):
        return False

    session.add(Subscription(subscriber_id=subscriber_id, channel_id=channel.id))
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            return False
        raise
    return True


async def unsubscribe(
    session: AsyncSession,
    *,
    subscriber_id: str,
    username: str,
) -> bool:
    """Remove a subscription; returns False when there was none."""
    channel = await _require_channel(session, username)
    result = await session.execute(
        delete(Subscription).where(
            _eq(Subscription.subscriber_id, subscriber_id),
            _eq(Subscription.channel_id, channel.id),
        )
    )
    await session.commit()
    return bool(cast(Any, result).rowcount)
