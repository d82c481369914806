"""Exception handlers rendering the standard error envelope."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import ApiError, BadRequestError, InternalError, ServiceUnavailableError

logger = logging.getLogger(__name__)


def error_response(error: ApiError, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(),
        headers=headers,
    )


def _validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
            "type": err.get("type", "value_error"),
        }
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed: %s",
                exc.message,
                extra={"path": request.url.path, "status_code": exc.status_code},
                exc_info=exc.__cause__,
            )
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(
            BadRequestError("Invalid request data", errors=_validation_errors(exc))
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        error = ApiError(str(exc.detail), status_code=exc.status_code)
        return error_response(error, headers=getattr(exc, "headers", None))

    @app.exception_handler(PoolTimeoutError)
    @app.exception_handler(OperationalError)
    async def handle_store_unavailable(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Credential store unavailable",
            extra={"path": request.url.path},
            exc_info=exc,
        )
        return error_response(ServiceUnavailableError("Credential store unavailable"))

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path}, exc_info=exc)
        return error_response(InternalError())
