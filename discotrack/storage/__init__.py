"""Durable storage for discotrack.

Submodules:
    atomic          -- write-temp-then-replace publish helper.
    errors          -- MediumUnavailable / DecodeFailure / RecordNotFound taxonomy.
    snapshot_store  -- Last-seen document per service.
"""

from discotrack.storage.errors import (
    DecodeFailureError,
    MediumUnavailableError,
    RecordNotFoundError,
    StorageError,
)
from discotrack.storage.snapshot_store import SnapshotStore

__all__ = [
    "DecodeFailureError",
    "MediumUnavailableError",
    "RecordNotFoundError",
    "SnapshotStore",
    "StorageError",
]
