"""
Team Tasks API Server

Entry point for the FastAPI application.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1 import router as api_v1_router
from app.core.config import Settings, get_settings
from app.core.database import Database
from app.core.errors import register_error_handlers
from app.core.logging_config import configure_logging
from app.core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware

log = structlog.get_logger()


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``database`` lets callers (tests, scripts) supply an already-built handle;
    otherwise one is built from ``settings.database_url`` at startup.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, settings.log_format)
        db = database or Database(settings.database_url, echo=settings.debug)
        db.connect()
        if settings.create_tables_on_startup:
            await db.create_all()
        app.state.db = db
        log.info("Team Tasks starting", dialect=db.engine.dialect.name)
        try:
            yield
        finally:
            log.info("Team Tasks shutting down")
            if database is None:
                await db.dispose()

    app = FastAPI(
        title="Team Tasks",
        description="Team task tracking with status history, activity feed and task watchers.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    if database is not None:
        # Available before lifespan runs (e.g. ASGITransport does not send lifespan events).
        database.connect()
        app.state.db = database

    # Middleware (order matters: last added is outermost)
    app.state.settings = settings

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_error_handlers(app)

    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check: verifies database connectivity."""
        try:
            await app.state.db.ping()
        except (SQLAlchemyError, OSError) as exc:
            log.error("readiness.failed", error=str(exc))
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ready"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("app.main:app", host=_settings.host, port=_settings.port, reload=_settings.debug)
