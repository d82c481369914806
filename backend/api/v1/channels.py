"""Channel profile and subscription endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.responses import ApiResponse, ChannelView, SubscriptionState
from models import User
from services.subscriptions import get_channel_profile, subscribe, unsubscribe

router = APIRouter(prefix="/users/channel", tags=["channels"])


@router.get("/{username}", response_model=ApiResponse[ChannelView])
async def get_channel(
    username: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ApiResponse[ChannelView]:
    profile = await get_channel_profile(session, username=username, viewer_id=current_user.id)
    channel = profile.channel
    return ApiResponse[ChannelView](
        status_code=status.HTTP_200_OK,
        message="Channel fetched successfully",
        data=ChannelView(
            id=channel.id,
            username=channel.username,
            fullname=channel.fullname,
            avatar=channel.avatar,
            cover_image=channel.cover_image,
            subscribers_count=profile.subscribers_count,
            subscribed_to_count=profile.subscribed_to_count,
            is_subscribed=profile.is_subscribed,
        ),
    )


@router.post("/{username}/subscription", response_model=ApiResponse[SubscriptionState])
async def subscribe_to_channel(
    username: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ApiResponse[SubscriptionState]:
    created = await subscribe(session, subscriber_id=current_user.id, username=username)
    return ApiResponse[SubscriptionState](
        status_code=status.HTTP_200_OK,
        message="Subscribed" if created else "Already subscribed",
        data=SubscriptionState(channel=username.strip().lower(), subscribed=True),
    )


@router.delete("/{username}/subscription", response_model=ApiResponse[SubscriptionState])
async def unsubscribe_from_channel(
    username: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ApiResponse[SubscriptionState]:
    removed = await unsubscribe(session, subscriber_id=current_user.id, username=username)
    return ApiResponse[SubscriptionState](
        status_code=status.HTTP_200_OK,
        message="Unsubscribed" if removed else "Was not subscribed",
        data=SubscriptionState(channel=username.strip().lower(), subscribed=False),
    )
