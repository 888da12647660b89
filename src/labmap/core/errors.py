"""
Error taxonomy.

We separate error types so callers can react correctly.
Example:
SourceUnavailable aborts one refresh cycle and keeps the previous snapshot.
MalformedRecord drops a single record and the cycle carries on.
NotFound becomes a Failed envelope, never a transport error.
StartupConfigError is fatal, but only before anything was ever loaded.
"""


class LabmapError(Exception):
    """Base class for all labmap exceptions."""


class SourceUnavailable(LabmapError):
    """Raised when a config source cannot produce a listing."""


class MalformedRecord(LabmapError):
    """Raised when a raw record does not decode into the expected schema."""


class NotFound(LabmapError):
    """Raised when a lookup names a machine absent from the current snapshot."""

    def __init__(self, name: str) -> None:
        super().__init__(f"machine not found: {name}")
        self.name = name


class StartupConfigError(LabmapError):
    """Raised when the initial load fails and no empty start was allowed."""


class SnapshotInvariantError(LabmapError, ValueError):
    """Raised when a snapshot name list does not match its entries."""


class LabmapClientError(LabmapError):
    """Raised by the client library for any failed query."""
