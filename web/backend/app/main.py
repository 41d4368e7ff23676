"""FastAPI application for the Hub catalog.

Provides REST API endpoints wrapping the hub registry for:
- Templates: list, search, categories, and full template retrieval
- Apps: list, search, categories, and full app retrieval
- Health: service status with per-kind record counts
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hub import __version__
from hub.registry.catalog import CatalogService
from hub.registry.errors import HubError, QueryValidationError, RecordNotFoundError

from web.backend.app.models.api import ErrorResponse, HealthResponse
from web.backend.app.routers import apps, templates

logger = logging.getLogger(__name__)


def create_app(catalog: CatalogService) -> FastAPI:
    """Build the API around an already initialized ``catalog``."""
    app = FastAPI(
        title="Hub API",
        description=(
            "Central registry for Docker Compose templates and NAS apps. "
            "Records are loaded from JSON files on disk and cached in memory."
        ),
        version=__version__,
    )
    app.state.catalog = catalog

    # -----------------------------------------------------------------------
    # Middleware (the hub is public: allow all origins)
    # -----------------------------------------------------------------------
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Accept", "Content-Type"],
        expose_headers=["Link"],
        max_age=300,
    )

    # -----------------------------------------------------------------------
    # Error envelope
    # -----------------------------------------------------------------------

    @app.exception_handler(RecordNotFoundError)
    async def _not_found(request: Request, exc: RecordNotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(QueryValidationError)
    async def _bad_request(request: Request, exc: QueryValidationError):
        return _error(400, str(exc))

    @app.exception_handler(HubError)
    async def _internal(request: Request, exc: HubError):
        logger.error("Request %s failed: %s", request.url.path, exc)
        return _error(500, str(exc))

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error serving %s", request.url.path)
        return _error(500, "internal server error")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    app.include_router(templates.router)
    app.include_router(apps.router)

    @app.get("/", tags=["meta"])
    def root():
        """Return basic API information."""
        return {
            "name": "Hub API",
            "version": __version__,
            "api": "/api/v1",
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse, tags=["meta"])
    def health_check():
        """Health check with the counts of the installed snapshots."""
        return HealthResponse(status="ok", **catalog.stats())

    return app


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )
