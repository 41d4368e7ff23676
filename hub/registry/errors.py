"""Error taxonomy for the registry and its callers."""

from __future__ import annotations


class HubError(Exception):
    """Base class for every error raised by the hub."""


class RegistryInitError(HubError):
    """Raised when the registry cannot complete its first load."""


class ScanError(HubError):
    """Raised when a mandatory root directory cannot be scanned."""


class RecordParseError(HubError):
    """Raised when a single record file does not describe a valid record.

    Always contained within a scan: the offending file is skipped.
    """


class RecordNotFoundError(HubError):
    """Raised when an identifier is not present in the current snapshot."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class QueryValidationError(HubError):
    """Raised by caller-facing layers for malformed query input."""
