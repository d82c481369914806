"""Account, session and profile endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, File, Form, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import (
    get_current_user,
    get_db,
    get_media_uploader,
    get_session_manager,
    get_settings,
)
from api.responses import (
    ApiResponse,
    ChangePasswordRequest,
    LoginData,
    LoginRequest,
    RefreshRequest,
    TokenData,
    UpdateUserDataRequest,
    UserView,
)
from core.config import Settings
from models import User
from services.accounts import (
    Registration,
    register_user,
    replace_profile_image,
    update_account_details,
)
from services.auth import (
    REFRESH_COOKIE,
    SessionManager,
    clear_token_cookies,
    set_token_cookies,
)
from services.media import MediaUploader

router = APIRouter(prefix="/users", tags=["users"])
UPDATE_METHODS = ["PATCH", "POST"]


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[UserView],
)
async def register(
    fullname: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    username: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
    session: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> ApiResponse[UserView]:
    user = await register_user(
        session,
        uploader,
        Registration(
            fullname=fullname or "",
            email=email or "",
            username=username or "",
            password=password or "",
        ),
        avatar=avatar,
        cover_image=cover_image,
    )
    return ApiResponse[UserView](
        status_code=status.HTTP_201_CREATED,
        message="User registered successfully",
        data=UserView.model_validate(user),
    )


@router.post("/login", response_model=ApiResponse[LoginData])
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[LoginData]:
    result = await manager.login(
        session,
        username=payload.username,
        email=payload.email,
        password=payload.password or "",
    )
    set_token_cookies(
        response,
        settings,
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )
    return ApiResponse[LoginData](
        status_code=status.HTTP_200_OK,
        message="User logged in successfully",
        data=LoginData(
            user=UserView.model_validate(result.user),
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        ),
    )


@router.post("/logout", response_model=ApiResponse[dict[str, Any]])
async def logout(
    response: Response,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[dict[str, Any]]:
    await manager.logout(session, current_user.id)
    clear_token_cookies(response, settings)
    return ApiResponse[dict[str, Any]](
        status_code=status.HTTP_200_OK,
        message="User logged out successfully",
        data={},
    )


@router.post("/refresh-access-token", response_model=ApiResponse[TokenData])
async def refresh_access_token(
    request: Request,
    response: Response,
    payload: Annotated[RefreshRequest | None, Body()] = None,
    session: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[TokenData]:
    # Cookie first, then the JSON body, matching access-token precedence.
    presented = request.cookies.get(REFRESH_COOKIE) or (
        payload.refresh_token if payload is not None else None
    )
    tokens = await manager.refresh(session, presented)
    set_token_cookies(
        response,
        settings,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )
    return ApiResponse[TokenData](
        status_code=status.HTTP_200_OK,
        message="Access token refreshed",
        data=TokenData(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        ),
    )


@router.api_route(
    "/change-current-password",
    methods=UPDATE_METHODS,
    response_model=ApiResponse[dict[str, Any]],
)
async def change_current_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse[dict[str, Any]]:
    await manager.change_password(
        session,
        user_id=current_user.id,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return ApiResponse[dict[str, Any]](
        status_code=status.HTTP_200_OK,
        message="Password changed successfully",
        data={},
    )


@router.get("/get-current-user", response_model=ApiResponse[UserView])
async def get_current_user_profile(
    current_user: User = Depends(get_current_user),
) -> ApiResponse[UserView]:
    return ApiResponse[UserView](
        status_code=status.HTTP_200_OK,
        message="Current user fetched successfully",
        data=UserView.model_validate(current_user),
    )


@router.api_route(
    "/update-user-data",
    methods=UPDATE_METHODS,
    response_model=ApiResponse[UserView],
)
async def update_user_data(
    payload: UpdateUserDataRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ApiResponse[UserView]:
    user = await update_account_details(
        session,
        current_user,
        fullname=payload.fullname,
        email=payload.email,
        username=payload.username,
    )
    return ApiResponse[UserView](
        status_code=status.HTTP_200_OK,
        message="Account details updated successfully",
        data=UserView.model_validate(user),
    )


@router.api_route(
    "/update-avatar-image",
    methods=UPDATE_METHODS,
    response_model=ApiResponse[UserView],
)
async def update_avatar_image(
    avatar: Annotated[UploadFile | None, File()] = None,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> ApiResponse[UserView]:
    user = await replace_profile_image(session, uploader, current_user, avatar, kind="avatar")
    return ApiResponse[UserView](
        status_code=status.HTTP_200_OK,
        message="Avatar image updated successfully",
        data=UserView.model_validate(user),
    )


@router.api_route(
    "/update-cover-image",
    methods=UPDATE_METHODS,
    response_model=ApiResponse[UserView],
)
async def update_cover_image(
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> ApiResponse[UserView]:
    user = await replace_profile_image(session, uploader, current_user, cover_image, kind="cover")
    return ApiResponse[UserView](
        status_code=status.HTTP_200_OK,
        message="Cover image updated successfully",
        data=UserView.model_validate(user),
    )
