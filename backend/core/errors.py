"""Typed API errors shared by services and the HTTP boundary."""

from __future__ import annotations

from typing import Any

from fastapi import status


class ApiError(Exception):
    """Failure carrying an HTTP status, a message and optional error details."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[Any] | None = None,
        data: Any = None,
        status_code: int | None = None,
    ) -> None:
        if status_code is not None:
            self.status_code = status_code
        self.message = message or self.default_message
        self.errors = list(errors or [])
        self.data = data
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "message": self.message,
            "data": self.data,
            "errors": self.errors,
            "success": False,
        }


class BadRequestError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class PayloadTooLargeError(ApiError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    default_message = "Request body too large"


class InternalError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"


class ServiceUnavailableError(ApiError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable"


__all__ = [
    "ApiError",
    "BadRequestError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "PayloadTooLargeError",
    "InternalError",
    "ServiceUnavailableError",
]
