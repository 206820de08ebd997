"""Application factory for the FastAPI app.

Centralizes app construction (state, lifespan, middleware, handlers, routers)
so tests can build isolated instances with their own store and limiter.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.db import AbstractDatabase, PostgresDatabase, bootstrap_schema
from app.adapters.rate_limit import AbstractRateLimiter
from app.api.routes import health_router, pastes_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import build_rate_limiter, rate_limit_middleware
from app.services.identity_service import IdentityService
from app.services.paste_service import PasteService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    database: AbstractDatabase = app.state.database
    await database.connect()
    try:
        if settings.db.bootstrap_schema:
            await bootstrap_schema(database)
        logger.info("app.started", extra={"app_env": settings.app_env})
        yield
    finally:
        await database.close()


def create_app(
    *,
    database: AbstractDatabase | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        database: Store to use; defaults to a PostgreSQL pool from settings.
        rate_limiter: Limiter to use; defaults to one built from settings.

    Returns:
        Configured FastAPI app.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log, debug=settings.app.debug)

    app = FastAPI(
        title="Paste Service",
        description=(
            "Minimal paste sharing: issue opaque user ids, store text pastes "
            "anonymously or under a user id, and read them back by id. Every "
            "request is rate limited per client."
        ),
        version="0.1.0",
        lifespan=_lifespan,
    )

    app.state.database = database or PostgresDatabase.from_settings(settings.db)
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings.app)
    identity = IdentityService(app.state.database)
    app.state.paste_service = PasteService(
        app.state.database,
        identity,
        id_max_attempts=settings.app.id_max_attempts,
    )

    # Middleware: the last registered runs first, so request ids are bound
    # before the rate limiter logs anything.
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(pastes_router)
    app.include_router(health_router)

    return app
