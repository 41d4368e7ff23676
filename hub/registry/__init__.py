"""Registry — in-memory catalog of templates and apps loaded from disk.

The registry provides:
- Loading: full-tree scans of JSON record files with per-file soft failure
- Caching: immutable snapshots refreshed lazily once the cache TTL expires
- Concurrency: one writer / many readers per record kind
- Discovery: get by id, list, search and category enumeration
"""

from hub.registry.catalog import CatalogService
from hub.registry.errors import (
    HubError,
    QueryValidationError,
    RecordNotFoundError,
    RecordParseError,
    RegistryInitError,
    ScanError,
)
from hub.registry.models import App, RecordKind, RecordMetadata, Snapshot, Template

__all__ = [
    "App",
    "CatalogService",
    "HubError",
    "QueryValidationError",
    "RecordKind",
    "RecordMetadata",
    "RecordNotFoundError",
    "RecordParseError",
    "RegistryInitError",
    "ScanError",
    "Snapshot",
    "Template",
]
