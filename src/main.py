"""ResQ Roadside API -- Main Application Entry Point

Creates the FastAPI application, configures CORS middleware, registers
all API route modules under the /api/v1 prefix, and mounts the Socket.IO
ASGI application for real-time request updates.

Run with::

    uvicorn src.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.core.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup:
      - Import realtime handlers to register Socket.IO event listeners.
      - Create tables when ``db_create_all`` is set (local demos).

    Shutdown:
      - Dispose of the database engine.
    """
    # Importing handlers is sufficient to register all Socket.IO events
    from src.realtime import handlers  # noqa: F401
    from src.api.deps import engine

    if settings.db_create_all:
        from src.models import Base

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured (create_all)")

    yield

    await engine.dispose()


# ---------------------------------------------------------------------------
# Application instance
# ---------------------------------------------------------------------------

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Persistence failures
# ---------------------------------------------------------------------------

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """The transaction has already been rolled back by ``get_db``."""
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "The data store is temporarily unavailable. Please retry."},
    )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health():
    """Lightweight health check for load balancers and readiness checks."""
    return {"status": "ok", "version": settings.app_version}


# ---------------------------------------------------------------------------
# Register API route modules
# ---------------------------------------------------------------------------
# Each router already defines its own prefix (e.g. /requests, /providers)
# and tags.  We mount them under the shared /api/v1 prefix so the full paths
# become /api/v1/requests, /api/v1/providers, etc.
# ---------------------------------------------------------------------------

from src.api.routes import (  # noqa: E402
    drafts,
    issues,
    providers,
    requests,
    staff,
    users,
)

_prefix = settings.api_v1_prefix

app.include_router(requests.router, prefix=_prefix)
app.include_router(providers.router, prefix=_prefix)
app.include_router(staff.router, prefix=_prefix)
app.include_router(users.router, prefix=_prefix)
app.include_router(drafts.router, prefix=_prefix)
app.include_router(issues.router, prefix=_prefix)


# ---------------------------------------------------------------------------
# Mount Socket.IO ASGI application
# ---------------------------------------------------------------------------

from src.realtime.socketServer import socket_app  # noqa: E402

app.mount("/ws", socket_app)
