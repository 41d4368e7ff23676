"""Registry data models — records, metadata projections, and snapshots."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from hub.registry.errors import RecordParseError


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------

# JSON null decodes to the field's empty value, any other type mismatch is
# a malformed record.


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RecordParseError(f"field '{key}' must be a string")
    return value


def _int(data: dict, key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise RecordParseError(f"field '{key}' must be an integer")
    return value


def _str_list(data: dict, key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise RecordParseError(f"field '{key}' must be a list of strings")
    return list(value)


def _int_list(data: dict, key: str) -> list[int]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(
        isinstance(v, int) and not isinstance(v, bool) for v in value
    ):
        raise RecordParseError(f"field '{key}' must be a list of integers")
    return list(value)


def _str_map(data: dict, key: str) -> dict[str, str]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(
        isinstance(v, str) for v in value.values()
    ):
        raise RecordParseError(f"field '{key}' must be an object of strings")
    return dict(value)


# Date, time, optional fraction of any precision, and a mandatory offset.
_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


def _timestamp(data: dict, key: str) -> Optional[datetime]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RecordParseError(f"field '{key}' must be an RFC 3339 timestamp")
    match = _RFC3339.match(value.strip())
    if match is None:
        raise RecordParseError(
            f"field '{key}' must be an RFC 3339 timestamp, got {value!r}"
        )
    date, clock, fraction, offset = match.groups()
    # fromisoformat takes at most microseconds; finer digits are truncated.
    text = f"{date}T{clock}"
    if fraction:
        text += "." + fraction[:6].ljust(6, "0")
    text += "+00:00" if offset in ("Z", "z") else offset
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise RecordParseError(
            f"field '{key}' must be an RFC 3339 timestamp, got {value!r}"
        ) from None


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class RecordMetadata:
    """Summary info for listings and search results.

    Leaves out the heavy payloads (compose text, install scripts) so bulk
    responses stay small.
    """

    id: str
    name: str
    description: str = ""
    icon: str = ""
    category: str = ""
    author: str = ""
    version: str = ""
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "category": self.category,
            "author": self.author,
            "version": self.version,
            "updated_at": _format_timestamp(self.updated_at),
        }


@dataclass
class TemplateRequirements:
    """System requirements a template declares."""

    min_memory_mb: int = 0
    min_disk_gb: int = 0
    ports: list[int] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "TemplateRequirements":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise RecordParseError("field 'requirements' must be an object")
        return cls(
            min_memory_mb=_int(data, "min_memory_mb"),
            min_disk_gb=_int(data, "min_disk_gb"),
            ports=_int_list(data, "ports"),
            notes=_str_list(data, "notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "min_memory_mb": self.min_memory_mb,
            "min_disk_gb": self.min_disk_gb,
            "ports": list(self.ports),
            "notes": list(self.notes),
        }


@dataclass
class _RecordBase:
    # Identity
    id: str
    name: str
    description: str = ""
    icon: str = ""

    # Classification
    category: str = ""
    author: str = ""
    version: str = ""

    # Lifecycle
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Presentation
    tags: list[str] = field(default_factory=list)
    screenshots: list[str] = field(default_factory=list)

    @staticmethod
    def _common_fields(data: dict) -> dict[str, Any]:
        return {
            "id": _str(data, "id"),
            "name": _str(data, "name"),
            "description": _str(data, "description"),
            "icon": _str(data, "icon"),
            "category": _str(data, "category"),
            "author": _str(data, "author"),
            "version": _str(data, "version"),
            "created_at": _timestamp(data, "created_at"),
            "updated_at": _timestamp(data, "updated_at"),
            "tags": _str_list(data, "tags"),
            "screenshots": _str_list(data, "screenshots"),
        }

    def _common_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "category": self.category,
            "author": self.author,
            "version": self.version,
            "created_at": _format_timestamp(self.created_at),
            "updated_at": _format_timestamp(self.updated_at),
            "tags": list(self.tags),
            "screenshots": list(self.screenshots),
        }

    @property
    def is_valid(self) -> bool:
        """A record needs both an identifier and a display name."""
        return bool(self.id) and bool(self.name)

    def metadata(self) -> RecordMetadata:
        return RecordMetadata(
            id=self.id,
            name=self.name,
            description=self.description,
            icon=self.icon,
            category=self.category,
            author=self.author,
            version=self.version,
            updated_at=self.updated_at,
        )

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on name, description, or category."""
        needle = query.lower()
        return (
            needle in self.name.lower()
            or needle in self.description.lower()
            or needle in self.category.lower()
        )


@dataclass
class Template(_RecordBase):
    """A Docker Compose template."""

    compose: str = ""
    variables: dict[str, str] = field(default_factory=dict)
    requirements: TemplateRequirements = field(default_factory=TemplateRequirements)

    @classmethod
    def from_dict(cls, data: Any) -> "Template":
        if not isinstance(data, dict):
            raise RecordParseError("template document must be a JSON object")
        return cls(
            **cls._common_fields(data),
            compose=_str(data, "compose"),
            variables=_str_map(data, "variables"),
            requirements=TemplateRequirements.from_dict(data.get("requirements")),
        )

    def to_dict(self) -> dict[str, Any]:
        result = self._common_dict()
        result["compose"] = self.compose
        result["variables"] = dict(self.variables)
        result["requirements"] = self.requirements.to_dict()
        return result


@dataclass
class App(_RecordBase):
    """An addon installed onto the NAS by package and script."""

    dependencies: list[str] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)
    services: list[str] = field(default_factory=list)
    min_nas_version: str = ""
    install_script: str = ""
    uninstall_script: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "App":
        if not isinstance(data, dict):
            raise RecordParseError("app document must be a JSON object")
        return cls(
            **cls._common_fields(data),
            dependencies=_str_list(data, "dependencies"),
            packages=_str_list(data, "packages"),
            services=_str_list(data, "services"),
            min_nas_version=_str(data, "min_nas_version"),
            install_script=_str(data, "install_script"),
            uninstall_script=_str(data, "uninstall_script"),
        )

    def to_dict(self) -> dict[str, Any]:
        result = self._common_dict()
        result["dependencies"] = list(self.dependencies)
        result["packages"] = list(self.packages)
        result["services"] = list(self.services)
        result["min_nas_version"] = self.min_nas_version
        result["install_script"] = self.install_script
        result["uninstall_script"] = self.uninstall_script
        return result


Record = Union[Template, App]


class RecordKind(str, enum.Enum):
    """The two independently loaded record kinds."""

    TEMPLATE = "template"
    APP = "app"

    @property
    def record_class(self) -> type:
        return Template if self is RecordKind.TEMPLATE else App

    @property
    def label(self) -> str:
        return self.value

    @property
    def plural(self) -> str:
        return f"{self.value}s"

    def parse(self, data: Any) -> Record:
        return self.record_class.from_dict(data)


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of every record of one kind, as of one scan.

    Replaced whole on reload; never mutated after construction.
    """

    records: Mapping[str, Record] = field(
        default_factory=lambda: MappingProxyType({})
    )
    categories: frozenset[str] = frozenset()
    loaded_at: Optional[datetime] = None

    @classmethod
    def build(
        cls, records: Mapping[str, Record], loaded_at: Optional[datetime]
    ) -> "Snapshot":
        """Freeze ``records`` into a snapshot ordered by identifier."""
        ordered = {key: records[key] for key in sorted(records)}
        return cls(
            records=MappingProxyType(ordered),
            categories=frozenset(r.category for r in ordered.values()),
            loaded_at=loaded_at,
        )

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    def __len__(self) -> int:
        return len(self.records)
