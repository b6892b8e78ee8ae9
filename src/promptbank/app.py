"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from promptbank import __version__
from promptbank.api.middleware.logging import RequestContextMiddleware
from promptbank.api.middleware.session import SessionRenewalMiddleware
from promptbank.api.web.router import web_router
from promptbank.common.errors import register_error_handlers
from promptbank.common.logging import configure_logging
from promptbank.config import get_settings
from promptbank.db.session import Database

logger = structlog.stdlib.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    log = structlog.stdlib.get_logger()
    await log.ainfo(
        "promptbank.startup",
        version=__version__,
        env=settings.env,
        database=settings.database.url.split("@")[-1],
    )

    database = Database(settings.database)
    await database.create_all()

    app.state.settings = settings
    app.state.database = database

    yield

    await database.dispose()
    await log.ainfo("promptbank.shutdown")


def create_app() -> FastAPI:
    """Application factory, called by Uvicorn."""
    settings = get_settings()

    app = FastAPI(
        title="Prompt Bank",
        description="Shared prompt library with roles, version history and an audit trail.",
        version=__version__,
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Middleware (last added is outermost)
    app.add_middleware(SessionRenewalMiddleware)
    app.add_middleware(RequestContextMiddleware)

    register_error_handlers(app)

    app.include_router(web_router)

    return app
