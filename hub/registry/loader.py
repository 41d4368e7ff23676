"""Record loader — full-tree scans of a record root directory.

A scan never aborts on a single bad file: unreadable files, malformed JSON,
and documents without an identifier or name are logged, recorded as
skipped, and the walk carries on.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from hub.registry.errors import RecordParseError, ScanError
from hub.registry.models import Record, RecordKind, Snapshot
from hub.utils.file_scanner import scan_json_files

logger = logging.getLogger(__name__)


@dataclass
class SkippedFile:
    """A file the scan left out, and why."""

    path: Path
    reason: str


@dataclass
class ScanResult:
    """Everything one scan of a root directory produced."""

    kind: RecordKind
    root: Path
    records: dict[str, Record] = field(default_factory=dict)
    skipped: list[SkippedFile] = field(default_factory=list)
    root_missing: bool = False

    @property
    def categories(self) -> set[str]:
        return {record.category for record in self.records.values()}

    def to_snapshot(self, loaded_at: Optional[datetime]) -> Snapshot:
        return Snapshot.build(self.records, loaded_at)


def load_records(root: str | Path, kind: RecordKind, required: bool = True) -> ScanResult:
    """Scan ``root`` recursively for ``*.json`` records of ``kind``.

    If ``root`` is not an accessible directory, a required kind raises
    :class:`ScanError`; an optional kind yields an empty result.

    On identifier collisions the file scanned last wins.
    """
    root = Path(root)
    result = ScanResult(kind=kind, root=root)

    try:
        is_dir = root.is_dir()
    except OSError as e:
        return _root_unavailable(
            result, f"cannot access {kind.plural} directory {root}: {e}", required
        )

    if not is_dir:
        return _root_unavailable(
            result, f"{kind.plural} directory not found: {root}", required
        )

    try:
        for path in scan_json_files(root):
            record = _load_file(path, kind, result)
            if record is None:
                continue

            previous = result.records.get(record.id)
            if previous is not None:
                logger.info(
                    "Duplicate %s id %r in %s overrides an earlier file",
                    kind.label,
                    record.id,
                    path,
                )
            result.records[record.id] = record
    except OSError as e:
        # Per-file errors are handled in _load_file; only listing the root gets here.
        return _root_unavailable(
            result, f"cannot access {kind.plural} directory {root}: {e}", required
        )

    return result


def _root_unavailable(result: ScanResult, reason: str, required: bool) -> ScanResult:
    """Fail a required kind, or degrade an optional one to an empty result."""
    if required:
        raise ScanError(reason)
    logger.warning("Loading no %s: %s", result.kind.plural, reason)
    result.records.clear()
    result.skipped.clear()
    result.root_missing = True
    return result


def _load_file(path: Path, kind: RecordKind, result: ScanResult) -> Optional[Record]:
    """Parse one file, recording it as skipped on any failure."""
    try:
        data = path.read_bytes()
    except OSError as e:
        _skip(result, path, f"failed to read: {e}")
        return None

    try:
        document = json.loads(data)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError, UnicodeDecodeError and
        # oversized integer literals.
        _skip(result, path, f"failed to parse: {e}")
        return None

    try:
        record = kind.parse(document)
    except RecordParseError as e:
        _skip(result, path, f"failed to parse: {e}")
        return None

    if not record.is_valid:
        _skip(result, path, f"invalid {kind.label}: missing id or name")
        return None

    return record


def _skip(result: ScanResult, path: Path, reason: str) -> None:
    logger.warning("Skipping %s: %s", path, reason)
    result.skipped.append(SkippedFile(path=path, reason=reason))
