"""Apps router -- list, search, and fetch NAS addons."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from hub.registry.catalog import CatalogService

from web.backend.app.dependencies import get_catalog, require_query
from web.backend.app.models.api import (
    AppResponse,
    RecordMetadataResponse,
    SuccessResponse,
    metadata_to_response,
)

router = APIRouter(prefix="/api/v1/apps", tags=["apps"])


@router.get(
    "",
    response_model=SuccessResponse[list[RecordMetadataResponse]],
    summary="List all apps",
)
def list_apps(catalog: CatalogService = Depends(get_catalog)):
    """List metadata for every app; empty when no apps directory exists."""
    return SuccessResponse(data=metadata_to_response(catalog.list_apps()))


@router.get(
    "/categories",
    response_model=SuccessResponse[list[str]],
    summary="List app categories",
)
def get_app_categories(catalog: CatalogService = Depends(get_catalog)):
    return SuccessResponse(data=catalog.get_app_categories())


@router.get(
    "/search",
    response_model=SuccessResponse[list[RecordMetadataResponse]],
    summary="Search apps",
)
def search_apps(
    q: Optional[str] = Query(None, description="Case-insensitive search text"),
    catalog: CatalogService = Depends(get_catalog),
):
    query = require_query(q)
    return SuccessResponse(data=metadata_to_response(catalog.search_apps(query)))


@router.get(
    "/{app_id}",
    response_model=SuccessResponse[AppResponse],
    summary="Get an app",
)
def get_app(app_id: str, catalog: CatalogService = Depends(get_catalog)):
    """Retrieve a full app, install scripts included."""
    app = catalog.get_app(app_id)
    return SuccessResponse(data=AppResponse(**app.to_dict()))
