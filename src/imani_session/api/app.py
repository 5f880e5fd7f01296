"""
imani_session.api.app

FastAPI app factory for the IMANI session service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Own the process-wide resources: flag DB and the per-client session registry.
- Tear every client session down at shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from imani_session import __version__
from imani_session.api.errors import register_exception_handlers
from imani_session.api.routers.communications import router as communications_router
from imani_session.api.routers.companies import router as companies_router
from imani_session.api.routers.employees import router as employees_router
from imani_session.api.routers.health import router as health_router
from imani_session.api.routers.session import router as session_router
from imani_session.db.session import create_engine, create_schema, create_sessionmaker
from imani_session.observability.logging import configure_logging, get_logger
from imani_session.observability.middleware import RequestContextMiddleware
from imani_session.services.flags import FlagStore
from imani_session.services.sessions import SessionRegistry
from imani_session.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    backend_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    `backend_transport` lets tests route hosted-backend calls to an in-process fake.
    """

    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod uses Alembic.
            await create_schema(engine)
        sessionmaker = create_sessionmaker(engine)

        sessions = SessionRegistry(
            settings=settings, flags=FlagStore(sessionmaker), transport=backend_transport
        )

        app.state.settings = settings
        app.state.engine = engine
        app.state.sessionmaker = sessionmaker
        app.state.sessions = sessions
        try:
            yield
        finally:
            await sessions.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="IMANI Session Service",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(session_router)
    app.include_router(companies_router)
    app.include_router(communications_router)
    app.include_router(employees_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Each API client owns one session store, reached through its bearer token; that
# store is the single writer of the client's session state.
