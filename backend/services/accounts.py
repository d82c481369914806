"""Account registration and profile updates."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass

from fastapi import UploadFile
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import BadRequestError, ConflictError, InternalError
from core.security import MIN_PASSWORD_LENGTH, hash_password
from db.errors import is_unique_violation
from models import User

from .auth.identity_resolution import (
    find_user_by_id,
    normalize_identifier,
    registration_conflict_exists,
)
from .media import MediaKind, MediaUploader, MediaUploadError, StoredMedia

logger = logging.getLogger(__name__)

DUPLICATE_ACCOUNT = "User already exists with this email or username"
USERNAME_PATTERN = re.compile(r"^[a-z0-9_.]{3,30}$")
_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)


@dataclass(frozen=True, slots=True)
class Registration:
    fullname: str
    email: str
    username: str
    password: str


def _require_text(**fields: str | None) -> dict[str, str]:
    cleaned = {name: (value or "").strip() for name, value in fields.items()}
    missing = sorted(name for name, value in cleaned.items() if not value)
    if missing:
        raise BadRequestError(
            "All fields are required",
            errors=[{"field": name, "message": "Field is required"} for name in missing],
        )
    return cleaned


def _validated_identity(username: str, email: str) -> tuple[str, str]:
    normalized_username = normalize_identifier(username)
    normalized_email = normalize_identifier(email)
    if not USERNAME_PATTERN.fullmatch(normalized_username):
        raise BadRequestError(
            "Username must be 3-30 characters of letters, digits, underscores or dots"
        )
    try:
        _email_adapter.validate_python(normalized_email)
    except ValidationError as exc:
        raise BadRequestError("Email address is not valid") from exc
    return normalized_username, normalized_email


async def _commit_or_conflict(session: AsyncSession) -> None:
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise ConflictError(DUPLICATE_ACCOUNT) from exc
        raise


async def _upload_or_bad_request(
    uploader: MediaUploader,
    upload: UploadFile,
    *,
    kind: MediaKind,
) -> StoredMedia:
    try:
        return await uploader.upload_image(upload, kind=kind)
    except MediaUploadError as exc:
        raise BadRequestError(f"Error while uploading {kind} image") from exc


async def register_user(
    session: AsyncSession,
    uploader: MediaUploader,
    registration: Registration,
    *,
    avatar: UploadFile | None,
    cover_image: UploadFile | None = None,
) -> User:
    """Create an account; nothing is persisted unless the avatar upload succeeds."""
    fields = _require_text(
        fullname=registration.fullname,
        email=registration.email,
        username=registration.username,
        password=registration.password,
    )
    username, email = _validated_identity(fields["username"], fields["email"])
    if len(registration.password) < MIN_PASSWORD_LENGTH:
        raise BadRequestError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if await registration_conflict_exists(session, username=username, email=email):
        raise ConflictError(DUPLICATE_ACCOUNT)
    if avatar is None:
        raise BadRequestError("Avatar image is required")

    stored_avatar = await _upload_or_bad_request(uploader, avatar, kind="avatar")
    stored_cover: StoredMedia | None = None
    if cover_image is not None:
        try:
            stored_cover = await _upload_or_bad_request(uploader, cover_image, kind="cover")
        except Exception:
            await uploader.remove(stored_avatar.key)
            raise

    password_hash = await asyncio.to_thread(hash_password, registration.password)
    user = User(
        username=username,
        email=email,
        fullname=fields["fullname"],
        password_hash=password_hash,
        avatar=stored_avatar.url,
        avatar_key=stored_avatar.key,
        cover_image=stored_cover.url if stored_cover else None,
        cover_image_key=stored_cover.key if stored_cover else None,
    )
    session.add(user)
    try:
        await _commit_or_conflict(session)
    except Exception:
        await uploader.remove(stored_avatar.key)
        await uploader.remove(stored_cover.key if stored_cover else None)
        raise

    created = await find_user_by_id(session, user.id)
    if created is None:
        raise InternalError("Something went wrong while registering user")
    await session.refresh(created)
    logger.info("Registered user", extra={"user_id": created.id})
    return created


async def update_account_details(
    session: AsyncSession,
    user: User,
    *,
    fullname: str | None,
    email: str | None,
    username: str | None,
) -> User:
    fields = _require_text(fullname=fullname, email=email, username=username)
    new_username, new_email = _validated_identity(fields["username"], fields["email"])

    if await registration_conflict_exists(
        session,
        username=new_username,
        email=new_email,
        exclude_user_id=user.id,
    ):
        raise ConflictError(DUPLICATE_ACCOUNT)

    user.fullname = fields["fullname"]
    user.username = new_username
    user.email = new_email
    session.add(user)
    await _commit_or_conflict(session)
    await session.refresh(user)
    return user


async def replace_profile_image(
    session: AsyncSession,
    uploader: MediaUploader,
    user: User,
    upload: UploadFile | None,
    *,
    kind: MediaKind,
) -> User:
    """Upload a new avatar or cover image and drop the object it replaces."""
    if upload is None:
        label = "Avatar" if kind == "avatar" else "Cover image"
        raise BadRequestError(f"{label} file is missing")

    stored = await _upload_or_bad_request(uploader, upload, kind=kind)
    if kind == "avatar":
        previous_key = user.avatar_key
        user.avatar = stored.url
        user.avatar_key = stored.key
    else:
        previous_key = user.cover_image_key
        user.cover_image = stored.url
        user.cover_image_key = stored.key

    session.add(user)
    try:
        await session.commit()
    except Exception as exc:
        await session.rollback()
        await uploader.remove(stored.key)
        raise InternalError(f"Failed to update {kind} image") from exc
    await session.refresh(user)

    if previous_key and previous_key != stored.key:
        await uploader.remove(previous_key)
    return user
