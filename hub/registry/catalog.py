"""Catalog service — reload policy and query operations over the record stores.

Each query first checks whether the snapshot for its kind is older than the
cache TTL and, if so, rescans that kind's root before answering. There is
no background timer: an idle catalog serves nothing stale until the next
query arrives, which then pays for the rescan.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from hub.registry.errors import RecordNotFoundError, RegistryInitError, ScanError
from hub.registry.loader import ScanResult, load_records
from hub.registry.models import App, Record, RecordKind, RecordMetadata, Template
from hub.registry.store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = timedelta(minutes=60)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """Templates and apps, loaded from disk and served from memory.

    Templates are mandatory content: an inaccessible templates directory
    fails initialization. Apps are optional: a missing apps directory loads
    as an empty catalog.
    """

    def __init__(
        self,
        templates_dir: str | Path,
        apps_dir: str | Path,
        cache_ttl: timedelta = DEFAULT_CACHE_TTL,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.cache_ttl = cache_ttl
        self._clock = clock or _utcnow
        self._roots = {
            RecordKind.TEMPLATE: Path(templates_dir),
            RecordKind.APP: Path(apps_dir),
        }
        self._required = {RecordKind.TEMPLATE: True, RecordKind.APP: False}
        self._stores = {kind: RecordStore(kind) for kind in RecordKind}
        # Serializes scans per kind; templates and apps reload independently.
        self._refresh_locks = {kind: threading.Lock() for kind in RecordKind}

    @property
    def templates_dir(self) -> Path:
        return self._roots[RecordKind.TEMPLATE]

    @property
    def apps_dir(self) -> Path:
        return self._roots[RecordKind.APP]

    def store(self, kind: RecordKind) -> RecordStore:
        return self._stores[kind]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load templates and apps into memory.

        Raises :class:`RegistryInitError` if the templates cannot be loaded.
        """
        logger.info("Loading templates and apps...")
        try:
            self.refresh(RecordKind.TEMPLATE)
        except ScanError as e:
            raise RegistryInitError(f"failed to load templates: {e}") from e
        self.refresh(RecordKind.APP)
        logger.info(
            "Loaded %d templates and %d apps",
            len(self._stores[RecordKind.TEMPLATE]),
            len(self._stores[RecordKind.APP]),
        )

    def refresh(self, kind: RecordKind) -> ScanResult:
        """Rescan ``kind`` unconditionally and install the new snapshot."""
        with self._refresh_locks[kind]:
            return self._rescan(kind)

    def reload_if_stale(self, kind: RecordKind) -> bool:
        """Rescan ``kind`` if its snapshot is older than the cache TTL.

        Concurrent callers that all find the snapshot stale wait on the
        refresh lock, and all but the first find it fresh on re-check.
        Returns whether this call performed a scan.
        """
        if not self.is_stale(kind):
            return False
        with self._refresh_locks[kind]:
            if not self.is_stale(kind):
                return False
            logger.debug("%s cache expired, reloading", kind.plural.capitalize())
            self._rescan(kind)
            return True

    def reload(self) -> None:
        """Apply the TTL policy to every kind."""
        for kind in RecordKind:
            self.reload_if_stale(kind)

    def is_stale(self, kind: RecordKind) -> bool:
        loaded_at = self._stores[kind].last_load_time()
        if loaded_at is None:
            return True
        return self._clock() - loaded_at > self.cache_ttl

    def _rescan(self, kind: RecordKind) -> ScanResult:
        # Callers hold the refresh lock for ``kind``.
        root = self._roots[kind]
        try:
            result = load_records(root, kind, required=self._required[kind])
        except ScanError:
            logger.error("Failed to scan %s directory %s", kind.plural, root)
            raise
        self._stores[kind].replace_snapshot(result.to_snapshot(self._clock()))
        logger.debug(
            "Scanned %s: %d loaded, %d skipped",
            root,
            len(result.records),
            len(result.skipped),
        )
        return result

    # ------------------------------------------------------------------
    # Generic queries
    # ------------------------------------------------------------------

    def get(self, kind: RecordKind, record_id: str) -> Record:
        """Return the record with ``record_id`` or raise RecordNotFoundError."""
        self.reload_if_stale(kind)
        record = self._stores[kind].current_snapshot().records.get(record_id)
        if record is None:
            raise RecordNotFoundError(kind.label, record_id)
        return record

    def list_metadata(self, kind: RecordKind) -> list[RecordMetadata]:
        self.reload_if_stale(kind)
        snapshot = self._stores[kind].current_snapshot()
        return [record.metadata() for record in snapshot.records.values()]

    def list_categories(self, kind: RecordKind) -> list[str]:
        self.reload_if_stale(kind)
        return sorted(self._stores[kind].current_snapshot().categories)

    def search(self, kind: RecordKind, query: str) -> list[RecordMetadata]:
        """Metadata of every record whose name, description, or category
        contains ``query``, ignoring case.

        Empty queries are rejected by the caller-facing layers, not here.
        """
        self.reload_if_stale(kind)
        snapshot = self._stores[kind].current_snapshot()
        return [
            record.metadata()
            for record in snapshot.records.values()
            if record.matches(query)
        ]

    def stats(self) -> dict[str, Any]:
        """Per-kind counts and load times of the installed snapshots."""
        result: dict[str, Any] = {}
        for kind, store in self._stores.items():
            snapshot = store.current_snapshot()
            result[kind.plural] = {
                "count": len(snapshot),
                "categories": len(snapshot.categories),
                "loaded_at": snapshot.loaded_at.isoformat() if snapshot.loaded_at else None,
            }
        return result

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def get_template(self, template_id: str) -> Template:
        return self.get(RecordKind.TEMPLATE, template_id)

    def list_templates(self) -> list[RecordMetadata]:
        return self.list_metadata(RecordKind.TEMPLATE)

    def get_template_categories(self) -> list[str]:
        return self.list_categories(RecordKind.TEMPLATE)

    def search_templates(self, query: str) -> list[RecordMetadata]:
        return self.search(RecordKind.TEMPLATE, query)

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def get_app(self, app_id: str) -> App:
        return self.get(RecordKind.APP, app_id)

    def list_apps(self) -> list[RecordMetadata]:
        return self.list_metadata(RecordKind.APP)

    def get_app_categories(self) -> list[str]:
        return self.list_categories(RecordKind.APP)

    def search_apps(self, query: str) -> list[RecordMetadata]:
        return self.search(RecordKind.APP, query)
