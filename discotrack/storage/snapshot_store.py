"""Last-seen document per service.

Each service owns one slot, ``{storage_path}/{service}.json``, overwritten
wholesale on every ``put``.  No history is kept here; history lives in the
change log.

The store is populated from disk once (``load``) at startup and then served
from memory; ``put`` writes through to disk before updating memory.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from discotrack.models.document import DiscoveryDocument, DocumentParseError
from discotrack.storage.atomic import write_atomic
from discotrack.storage.errors import DecodeFailureError, MediumUnavailableError

_log = structlog.get_logger(component="storage.snapshots")

_SUFFIX = ".json"


class SnapshotStore:
    """Durable single-slot-per-service document store.

    Args:
        base_path: Directory holding one JSON file per service.  Created if
                   missing.
    """

    def __init__(self, base_path: str | Path) -> None:
        self._base_path = Path(base_path)
        self._documents: dict[str, DiscoveryDocument] = {}
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MediumUnavailableError(
                f"cannot create snapshot directory: {exc}",
                operation="init",
                path=self._base_path,
            ) from exc

    @property
    def base_path(self) -> Path:
        return self._base_path

    def load(self) -> int:
        """Read every stored snapshot into memory.  Returns the count loaded.

        Raises:
            MediumUnavailableError: directory cannot be listed or a file read.
            DecodeFailureError:     a stored snapshot is corrupt.
        """
        try:
            paths = sorted(p for p in self._base_path.iterdir() if p.suffix == _SUFFIX and p.is_file())
        except OSError as exc:
            raise MediumUnavailableError(
                f"cannot list snapshot directory: {exc}",
                operation="load",
                path=self._base_path,
            ) from exc

        documents: dict[str, DiscoveryDocument] = {}
        for path in paths:
            service = path.stem
            documents[service] = self._read(service, path, operation="load")
        self._documents = documents
        _log.info("snapshots_loaded", count=len(documents), path=str(self._base_path))
        return len(documents)

    def get_all(self) -> dict[str, DiscoveryDocument]:
        """Return a copy of the service -> document mapping."""
        return dict(self._documents)

    def get(self, service: str) -> DiscoveryDocument | None:
        return self._documents.get(service)

    def put(self, service: str, document: DiscoveryDocument) -> None:
        """Replace the stored snapshot for *service*.

        Raises:
            MediumUnavailableError: the snapshot file cannot be written.
        """
        path = self._path_for(service)
        text = json.dumps(document.to_dict(), separators=(",", ":"))
        try:
            write_atomic(path, text)
        except OSError as exc:
            raise MediumUnavailableError(
                f"cannot write snapshot: {exc}",
                operation="put",
                service=service,
                path=path,
            ) from exc
        self._documents[service] = document
        _log.debug("snapshot_stored", service=service, revision=document.revision)

    def adopt(self, service: str, document: DiscoveryDocument) -> None:
        """Hold *document* in memory only, after a failed ``put``.

        Later diffs use it; it reaches disk on the next successful ``put``.
        """
        self._documents[service] = document

    def _path_for(self, service: str) -> Path:
        return self._base_path / f"{service}{_SUFFIX}"

    def _read(self, service: str, path: Path, operation: str) -> DiscoveryDocument:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise MediumUnavailableError(
                f"cannot read snapshot: {exc}",
                operation=operation,
                service=service,
                path=path,
            ) from exc
        try:
            data = json.loads(raw.decode("utf-8"))
            if not isinstance(data, dict):
                raise DocumentParseError("document root must be an object")
            return DiscoveryDocument.from_dict(data)
        except (UnicodeDecodeError, json.JSONDecodeError, DocumentParseError) as exc:
            raise DecodeFailureError(
                f"corrupt snapshot: {exc}",
                operation=operation,
                service=service,
                path=path,
            ) from exc
