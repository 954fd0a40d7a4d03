"""Durable, append-only change log.

One JSON file per ``LoggedChange``, named ``{service}-{timestamp}.json``
under the configured directory.  The ``(service, timestamp)`` pair is the
record key: a second append for the same service within the same clock
second replaces the first record.

Listings read every record and fail as a whole on the first unreadable or
corrupt file rather than skipping it.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from pathlib import Path

import structlog

from discotrack.ledger.classifier import classify
from discotrack.models.changes import ChangeSet, ChangeSummary, LoggedChange
from discotrack.models.document import DiscoveryDocument
from discotrack.storage.atomic import write_atomic
from discotrack.storage.errors import (
    DecodeFailureError,
    MediumUnavailableError,
    RecordNotFoundError,
)

_log = structlog.get_logger(component="ledger.change_log")

_SUFFIX = ".json"
UNKNOWN_REVISION = "unknown"


def _split_key(stem: str) -> tuple[str, int] | None:
    """Split ``{service}-{timestamp}`` into its parts; None if not a record name."""
    service, sep, ts = stem.rpartition("-")
    if not sep or not service or not ts.isdigit():
        return None
    return service, int(ts)


class ChangeLog:
    """Append-only store of LoggedChange records.

    Args:
        base_path: Directory holding the record files.  Created if missing.
        clock:     Wall-clock source in unix seconds; injectable for tests.
    """

    def __init__(self, base_path: str | Path, clock: Callable[[], float] = time.time) -> None:
        self._base_path = Path(base_path)
        self._clock = clock
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MediumUnavailableError(
                f"cannot create change log directory: {exc}",
                operation="init",
                path=self._base_path,
            ) from exc

    @property
    def base_path(self) -> Path:
        return self._base_path

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def append(self, change_set: ChangeSet, new_document: DiscoveryDocument) -> LoggedChange:
        """Classify, stamp and persist *change_set*; return the stored record.

        Raises:
            MediumUnavailableError: the record cannot be written.
        """
        summary = ChangeSummary(
            additions=len(change_set.additions),
            modifications=len(change_set.modifications),
            deletions=len(change_set.deletions),
            tags=classify(change_set),
        )
        logged = LoggedChange(
            revision=new_document.revision or UNKNOWN_REVISION,
            timestamp=int(self._clock()),
            service=change_set.service,
            summary=summary,
            modifications=change_set.modifications,
            additions=change_set.additions,
            deletions=change_set.deletions,
        )

        path = self._path_for(logged.service, logged.timestamp)
        text = json.dumps(logged.to_dict(), indent=2)
        try:
            write_atomic(path, text)
        except OSError as exc:
            raise MediumUnavailableError(
                f"cannot write change record: {exc}",
                operation="append",
                service=logged.service,
                timestamp=logged.timestamp,
                path=path,
            ) from exc

        _log.info(
            "changes_logged",
            service=logged.service,
            timestamp=logged.timestamp,
            revision=logged.revision,
            additions=summary.additions,
            modifications=summary.modifications,
            deletions=summary.deletions,
            tags=sorted(summary.tags),
        )
        return logged

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def list_all(self, offset: int, limit: int) -> list[LoggedChange]:
        """All records, newest first, after skipping *offset*, at most *limit*.

        Raises:
            MediumUnavailableError: the directory or a record cannot be read.
            DecodeFailureError:     any record is corrupt.
        """
        return self._page(self._load(None, operation="list_all"), offset, limit)

    def list_for_service(self, service: str, offset: int, limit: int) -> list[LoggedChange]:
        """Like ``list_all`` but only records whose key service starts with *service*.

        This is a prefix match: ``"foo"`` also selects records of ``"foobar"``.
        """
        return self._page(self._load(service, operation="list_for_service"), offset, limit)

    def get(self, service: str, timestamp: int) -> LoggedChange:
        """Exact-key lookup.

        Raises:
            RecordNotFoundError:    no record for ``(service, timestamp)``.
            MediumUnavailableError: the record exists but cannot be read.
            DecodeFailureError:     the record is corrupt.
        """
        path = self._path_for(service, timestamp)
        if not path.is_file():
            raise RecordNotFoundError(
                f"no change record for {service} at {timestamp}",
                operation="get",
                service=service,
                timestamp=timestamp,
                path=path,
            )
        return self._read(path, operation="get", service=service, timestamp=timestamp)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _path_for(self, service: str, timestamp: int) -> Path:
        return self._base_path / f"{service}-{timestamp}{_SUFFIX}"

    def _load(self, service_prefix: str | None, operation: str) -> list[LoggedChange]:
        try:
            paths = [p for p in self._base_path.iterdir() if p.suffix == _SUFFIX and p.is_file()]
        except OSError as exc:
            raise MediumUnavailableError(
                f"cannot list change log directory: {exc}",
                operation=operation,
                service=service_prefix,
                path=self._base_path,
            ) from exc

        records: list[LoggedChange] = []
        for path in paths:
            key = _split_key(path.stem)
            if key is None:
                continue
            key_service, key_ts = key
            if service_prefix is not None and not key_service.startswith(service_prefix):
                continue
            records.append(self._read(path, operation=operation, service=key_service, timestamp=key_ts))
        # Ties on timestamp are broken by service so repeated pages are stable.
        records.sort(key=lambda r: (-r.timestamp, r.service))
        return records

    @staticmethod
    def _page(records: list[LoggedChange], offset: int, limit: int) -> list[LoggedChange]:
        if offset < 0 or limit < 0:
            raise ValueError("offset and limit must be non-negative")
        return records[offset : offset + limit]

    @staticmethod
    def _read(path: Path, *, operation: str, service: str, timestamp: int) -> LoggedChange:
        try:
            raw = path.read_bytes()
        except FileNotFoundError as exc:
            raise RecordNotFoundError(
                f"change record disappeared: {path.name}",
                operation=operation,
                service=service,
                timestamp=timestamp,
                path=path,
            ) from exc
        except OSError as exc:
            raise MediumUnavailableError(
                f"cannot read change record: {exc}",
                operation=operation,
                service=service,
                timestamp=timestamp,
                path=path,
            ) from exc
        try:
            return LoggedChange.from_dict(json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
            raise DecodeFailureError(
                f"corrupt change record {path.name}: {exc}",
                operation=operation,
                service=service,
                timestamp=timestamp,
                path=path,
            ) from exc
