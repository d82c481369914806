"""HTTP cookie helpers for auth token transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from fastapi import Response

from core.config import Settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
COOKIE_PATH = "/"


@dataclass(frozen=True, slots=True)
class CookiePolicy:
    secure: bool
    samesite: Literal["lax", "strict", "none"]
    access_max_age: int
    refresh_max_age: int


def cookie_policy(settings: Settings) -> CookiePolicy:
    """Strict, TLS-only cookies in production; relaxed cookies elsewhere."""
    strict = settings.is_production and not settings.allow_insecure_http_cookies
    return CookiePolicy(
        secure=strict,
        samesite="strict" if strict else "lax",
        access_max_age=settings.access_token_expire_minutes * 60,
        refresh_max_age=settings.refresh_token_expire_minutes * 60,
    )


def set_token_cookies(
    response: Response,
    settings: Settings,
    *,
    access_token: str,
    refresh_token: str,
) -> None:
    policy = cookie_policy(settings)
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        secure=policy.secure,
        samesite=policy.samesite,
        max_age=policy.access_max_age,
        path=COOKIE_PATH,
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        secure=policy.secure,
        samesite=policy.samesite,
        max_age=policy.refresh_max_age,
        path=COOKIE_PATH,
    )


def clear_token_cookies(response: Response, settings: Settings) -> None:
    policy = cookie_policy(settings)
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=key,
            path=COOKIE_PATH,
            secure=policy.secure,
            httponly=True,
            samesite=policy.samesite,
        )
