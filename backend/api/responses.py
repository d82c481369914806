"""Response envelopes and request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(ApiModel, Generic[DataT]):
    status_code: int
    message: str
    data: DataT
    success: bool = True


class UserView(ApiModel):
    id: str
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str | None = None
    created_at: datetime
    updated_at: datetime


class TokenData(ApiModel):
    access_token: str
    refresh_token: str


class LoginData(TokenData):
    user: UserView


class ChannelView(ApiModel):
    id: str
    username: str
    fullname: str
    avatar: str
    cover_image: str | None = None
    subscribers_count: int
    subscribed_to_count: int
    is_subscribed: bool


class SubscriptionState(ApiModel):
    channel: str
    subscribed: bool


class LoginRequest(ApiModel):
    # Either identifier is accepted; both may be sent.
    username: str | None = None
    email: str | None = None
    password: str | None = None


class RefreshRequest(ApiModel):
    refresh_token: str | None = None


class ChangePasswordRequest(ApiModel):
    current_password: str | None = None
    new_password: str | None = None


class UpdateUserDataRequest(ApiModel):
    username: str | None = None
    fullname: str | None = None
    email: str | None = None
