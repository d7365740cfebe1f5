"""FastAPI application entry point."""
import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from api.routers import contents, health, tags
from core.config import Settings, get_settings
from core.logging import configure_logging
from db.session import Storage
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)


async def not_found_exception_handler(_request: Request, exc: NotFoundError) -> Response:
    """Map missing content, history or tag rows to an empty 404."""
    logger.debug("Not found: %s", exc)
    return Response(status_code=status.HTTP_404_NOT_FOUND)


async def internal_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and answer with a generic 500."""
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error"},
    )


def create_app(
    settings: Settings | None = None,
    storage: Storage | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use. Defaults to the cached environment settings.
        storage: Storage adapter to serve from. When omitted one is built from
            settings and disposed at shutdown.
    """
    app_settings = settings or get_settings()
    configure_logging(app_settings.log_level)

    owns_storage = storage is None
    app_storage = storage or Storage.from_settings(app_settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
        """Manage application lifespan - startup and shutdown."""
        # Startup: make sure the tables exist
        await app_storage.create_schema()

        yield

        # Shutdown: release pooled connections
        if owns_storage:
            await app_storage.dispose()

    app = FastAPI(
        title="Content API",
        description="Versioned content records with edit history, rollback and tags.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.storage = app_storage

    app.add_exception_handler(NotFoundError, not_found_exception_handler)
    app.add_exception_handler(Exception, internal_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(contents.router, prefix=app_settings.api_prefix)
    app.include_router(tags.router, prefix=app_settings.api_prefix)

    # Serve static assets; mounted last so API routes take precedence
    if os.path.isdir(app_settings.static_dir):
        app.mount(
            "/",
            StaticFiles(directory=app_settings.static_dir, html=True),
            name="static",
        )

    return app

