"""Pydantic models for API request/response serialization.

These models mirror the hub registry dataclasses and provide proper JSON
serialization for the FastAPI endpoints. Every response is wrapped in an
envelope: ``{"success": true, "data": ...}`` or
``{"success": false, "error": "..."}``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class SuccessResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------


class RecordMetadataResponse(BaseModel):
    """Mirrors hub.registry.models.RecordMetadata."""

    id: str
    name: str
    description: str = ""
    icon: str = ""
    category: str = ""
    author: str = ""
    version: str = ""
    updated_at: Optional[datetime] = None


class _RecordResponse(BaseModel):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    category: str = ""
    author: str = ""
    version: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)
    screenshots: list[str] = Field(default_factory=list)


class TemplateRequirementsResponse(BaseModel):
    """Mirrors hub.registry.models.TemplateRequirements."""

    min_memory_mb: int = 0
    min_disk_gb: int = 0
    ports: list[int] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


class TemplateResponse(_RecordResponse):
    """Mirrors hub.registry.models.Template."""

    compose: str = ""
    variables: dict[str, str] = Field(default_factory=dict)
    requirements: TemplateRequirementsResponse = Field(
        default_factory=TemplateRequirementsResponse
    )


class AppResponse(_RecordResponse):
    """Mirrors hub.registry.models.App."""

    dependencies: list[str] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    min_nas_version: str = ""
    install_script: str = ""
    uninstall_script: str = ""


# ---------------------------------------------------------------------------
# Service models
# ---------------------------------------------------------------------------


class KindStatsResponse(BaseModel):
    count: int = 0
    categories: int = 0
    loaded_at: Optional[datetime] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    templates: KindStatsResponse = Field(default_factory=KindStatsResponse)
    apps: KindStatsResponse = Field(default_factory=KindStatsResponse)


def metadata_to_response(items: list[Any]) -> list[RecordMetadataResponse]:
    """Convert RecordMetadata dataclasses to response models."""
    return [RecordMetadataResponse(**m.to_dict()) for m in items]
