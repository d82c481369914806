"""Access-token request authentication."""

from __future__ import annotations

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import UnauthorizedError
from core.security import InvalidTokenError, TokenCodec
from models import User

from .cookies import ACCESS_COOKIE
from .identity_resolution import find_user_by_id

BEARER_SCHEME = "bearer"


def extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization")
    if not authorization:
        return None

    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != BEARER_SCHEME:
        return None
    token = value.strip()
    return token or None


class RequestAuthenticator:
    """Resolves the caller of a request from its access token.

    Token precedence: the ``accessToken`` cookie wins over an
    ``Authorization: Bearer`` header when both are sent.
    """

    def __init__(self, codec: TokenCodec) -> None:
        self.codec = codec

    def extract_token(self, request: Request) -> str | None:
        cookie_token = request.cookies.get(ACCESS_COOKIE)
        if cookie_token and cookie_token.strip():
            return cookie_token.strip()
        return extract_bearer_token(request)

    async def authenticate(self, request: Request, session: AsyncSession) -> User:
        token = self.extract_token(request)
        if token is None:
            raise UnauthorizedError("Unauthorized request")

        try:
            claims = self.codec.verify_access_token(token)
        except InvalidTokenError as exc:
            raise UnauthorizedError("Invalid access token") from exc

        user = await find_user_by_id(session, claims["sub"])
        if user is None:
            raise UnauthorizedError("Invalid access token")

        request.state.user = user
        return user
