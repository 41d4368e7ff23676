"""Templates router -- list, search, and fetch Docker Compose templates."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from hub.registry.catalog import CatalogService

from web.backend.app.dependencies import get_catalog, require_query
from web.backend.app.models.api import (
    RecordMetadataResponse,
    SuccessResponse,
    TemplateResponse,
    metadata_to_response,
)

router = APIRouter(prefix="/api/v1/templates", tags=["templates"])

# Handlers are plain functions so the server runs them in its thread pool;
# a query that triggers a rescan blocks only its own worker.


@router.get(
    "",
    response_model=SuccessResponse[list[RecordMetadataResponse]],
    summary="List all templates",
)
def list_templates(catalog: CatalogService = Depends(get_catalog)):
    """List metadata for every template in the catalog."""
    return SuccessResponse(data=metadata_to_response(catalog.list_templates()))


@router.get(
    "/categories",
    response_model=SuccessResponse[list[str]],
    summary="List template categories",
)
def get_template_categories(catalog: CatalogService = Depends(get_catalog)):
    return SuccessResponse(data=catalog.get_template_categories())


@router.get(
    "/search",
    response_model=SuccessResponse[list[RecordMetadataResponse]],
    summary="Search templates",
)
def search_templates(
    q: Optional[str] = Query(None, description="Case-insensitive search text"),
    catalog: CatalogService = Depends(get_catalog),
):
    """Match ``q`` against template names, descriptions, and categories."""
    query = require_query(q)
    return SuccessResponse(data=metadata_to_response(catalog.search_templates(query)))


@router.get(
    "/{template_id}",
    response_model=SuccessResponse[TemplateResponse],
    summary="Get a template",
)
def get_template(template_id: str, catalog: CatalogService = Depends(get_catalog)):
    """Retrieve a full template, compose definition included."""
    template = catalog.get_template(template_id)
    return SuccessResponse(data=TemplateResponse(**template.to_dict()))
