"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.error_handling import register_exception_handlers
from api.middleware import RequestBodyLimitMiddleware
from api.v1 import api_router
from core.config import Settings, get_settings
from core.logging import configure_logging
from db.session import create_engine, create_session_maker

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around ``settings`` (the process settings by default)."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = create_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting videohub backend", extra={"app_env": settings.app_env})
        yield
        await engine.dispose()

    app = FastAPI(title="videohub", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = create_session_maker(engine)

    app.add_middleware(
        RequestBodyLimitMiddleware,
        max_body_bytes=settings.request_body_limit_bytes,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
