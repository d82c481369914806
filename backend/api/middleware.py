"""Request body size guard."""

from __future__ import annotations

from collections.abc import Iterable

from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.errors import PayloadTooLargeError

from .error_handling import error_response

MULTIPART_CONTENT_TYPE = "multipart/form-data"


class RequestBodyLimitMiddleware:
    """Rejects non-upload bodies larger than ``max_body_bytes``.

    A declared ``Content-Length`` is checked before the app runs. Bodies sent
    without one (chunked transfer) are counted as they stream and the read
    fails with 413 once the limit is crossed. Multipart uploads are bounded
    per file while they are read.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_body_bytes: int,
        exempt_content_types: Iterable[str] = (MULTIPART_CONTENT_TYPE,),
    ) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes
        self.exempt_content_types = tuple(exempt_content_types)

    @property
    def limit_message(self) -> str:
        return f"Request body exceeds the {self.max_body_bytes} byte limit"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        content_type = headers.get("content-type", "").lower()
        if content_type.startswith(self.exempt_content_types):
            await self.app(scope, receive, send)
            return

        declared_length = headers.get("content-length", "").strip()
        if declared_length.isdigit() and int(declared_length) > self.max_body_bytes:
            response = error_response(PayloadTooLargeError(self.limit_message))
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    # Re-raised untouched by FastAPI's body parsing and rendered
                    # by the HTTPException handler.
                    raise HTTPException(status_code=413, detail=self.limit_message)
            return message

        await self.app(scope, limited_receive, send)
