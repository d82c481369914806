"""Core configuration, errors and security primitives."""

from .config import Settings, get_settings
from .errors import (
    ApiError,
    BadRequestError,
    ConflictError,
    InternalError,
    NotFoundError,
    PayloadTooLargeError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from .security import (
    InvalidTokenError,
    TokenCodec,
    TokenIssueError,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "Settings",
    "get_settings",
    "ApiError",
    "BadRequestError",
    "ConflictError",
    "InternalError",
    "NotFoundError",
    "PayloadTooLargeError",
    "ServiceUnavailableError",
    "UnauthorizedError",
    "InvalidTokenError",
    "TokenCodec",
    "TokenIssueError",
    "hash_password",
    "needs_rehash",
    "verify_password",
]
