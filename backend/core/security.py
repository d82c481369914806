"""Password hashing and signed session tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Literal
from uuid import uuid4

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from .config import Settings

if TYPE_CHECKING:
    from models import User

JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8
TokenType = Literal["access", "refresh"]

_password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    try:
        return _password_hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True


class InvalidTokenError(ValueError):
    """Raised when a presented token cannot be trusted."""


class TokenIssueError(RuntimeError):
    """Raised when a token cannot be signed (missing or unusable secret)."""


class TokenCodec:
    """Signs and verifies expiring JWTs with separate access/refresh secrets."""

    def __init__(self, settings: Settings) -> None:
        self.access_secret = settings.access_token_secret
        self.refresh_secret = settings.refresh_token_secret
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(minutes=settings.refresh_token_expire_minutes)

    def issue(
        self,
        claims: dict[str, Any],
        secret: str,
        ttl: timedelta,
        *,
        now: datetime | None = None,
    ) -> str:
        """Return a signed token embedding ``claims`` plus ``iat``/``exp``/``jti``."""
        if not secret:
            raise TokenIssueError("Token signing secret is not configured")
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            **claims,
            "jti": uuid4().hex,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        try:
            return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)
        except (TypeError, ValueError) as exc:
            raise TokenIssueError("Failed to sign token") from exc

    def verify(
        self,
        token: str,
        secret: str,
        *,
        expected_type: TokenType | None = None,
    ) -> dict[str, Any]:
        """Return the claims of ``token`` or raise :class:`InvalidTokenError`."""
        if not token or not secret:
            raise InvalidTokenError("Invalid token")
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError("Invalid token") from exc

        if expected_type is not None and payload.get("type") != expected_type:
            raise InvalidTokenError("Invalid token type")
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise InvalidTokenError("Invalid token subject")
        return payload

    def issue_access_token(self, user: User) -> str:
        return self.issue(
            {
                "sub": str(user.id),
                "username": user.username,
                "fullname": user.fullname,
                "email": user.email,
                "type": "access",
            },
            self.access_secret,
            self.access_ttl,
        )

    def issue_refresh_token(self, user: User) -> str:
        return self.issue(
            {"sub": str(user.id), "type": "refresh"},
            self.refresh_secret,
            self.refresh_ttl,
        )

    def verify_access_token(self, token: str) -> dict[str, Any]:
        return self.verify(token, self.access_secret, expected_type="access")

    def verify_refresh_token(self, token: str) -> dict[str, Any]:
        return self.verify(token, self.refresh_secret, expected_type="refresh")
