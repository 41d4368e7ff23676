"""FastAPI dependencies shared by the catalog routers."""

from __future__ import annotations

from fastapi import Request

from hub.registry.catalog import CatalogService
from hub.registry.errors import QueryValidationError


def get_catalog(request: Request) -> CatalogService:
    """Return the CatalogService bound to the running application."""
    return request.app.state.catalog


def require_query(q: str | None) -> str:
    """Reject a missing or empty search query."""
    if not q:
        raise QueryValidationError("query parameter 'q' is required")
    return q
