"""Persistence error taxonomy.

MediumUnavailableError -- the storage directory cannot be read or written.
DecodeFailureError     -- a stored record cannot be parsed back into its type.
RecordNotFoundError    -- an exact-key lookup missed; not a corruption.

Every error carries the operation, and where known the service, timestamp
and filesystem path, so callers can log and decide whether to retry the
enclosing poll cycle.
"""

from __future__ import annotations

from pathlib import Path


class StorageError(Exception):
    """Base class for change-log and snapshot-store failures."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        service: str | None = None,
        timestamp: int | None = None,
        path: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.service = service
        self.timestamp = timestamp
        self.path = path

    def context(self) -> dict[str, object]:
        """Return the non-empty context fields, for structured logging."""
        ctx: dict[str, object] = {"operation": self.operation}
        if self.service is not None:
            ctx["service"] = self.service
        if self.timestamp is not None:
            ctx["timestamp"] = self.timestamp
        if self.path is not None:
            ctx["path"] = str(self.path)
        return ctx


class MediumUnavailableError(StorageError):
    """Durable storage cannot be read or written."""


class DecodeFailureError(StorageError):
    """A stored record exists but cannot be decoded."""


class RecordNotFoundError(StorageError):
    """No record exists for the requested key."""
