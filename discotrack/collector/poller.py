"""Poll driver.

One cycle: fetch every configured service, then for each fetched document,
one service at a time:

    snapshot get -> diff (if a snapshot exists) -> append (if non-empty)
    -> notify -> snapshot put (always)

A service seen for the first time is stored without diffing.  Storage calls
block, so per-service processing runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from discotrack.collector.fetcher import DocumentFetcher
from discotrack.ledger.change_log import ChangeLog
from discotrack.ledger.diff import diff
from discotrack.models.changes import LoggedChange
from discotrack.models.document import DiscoveryDocument, DocumentParseError, parse_document
from discotrack.notifications.manager import NotificationDispatcher
from discotrack.observability.metrics import (
    changes_logged_total,
    fetch_failures_total,
    poll_cycles_total,
)
from discotrack.storage.errors import StorageError
from discotrack.storage.snapshot_store import SnapshotStore

_log = structlog.get_logger(component="collector.poller")


@dataclass
class CycleReport:
    """What one poll cycle did."""

    fetched: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    new_services: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    logged: list[LoggedChange] = field(default_factory=list)


class Poller:
    """Drives the fetch -> diff -> log -> store cycle.

    Args:
        fetcher:    Source of raw documents.
        snapshots:  Last-seen document per service (loaded by the caller).
        change_log: Durable change history.
        dispatcher: Optional notification fan-out for each logged change.
        interval:   Seconds to wait between cycles in ``run_forever``.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        snapshots: SnapshotStore,
        change_log: ChangeLog,
        dispatcher: NotificationDispatcher | None = None,
        interval: int = 3600,
    ) -> None:
        self._fetcher = fetcher
        self._snapshots = snapshots
        self._change_log = change_log
        self._dispatcher = dispatcher
        self._interval = interval
        self._stop_event = asyncio.Event()

    async def run_forever(self) -> None:
        """Run cycles until ``stop`` is called.  A failed cycle is logged, not fatal."""
        while not self._stop_event.is_set():
            try:
                await self.run_cycle()
            except Exception as exc:  # noqa: BLE001
                _log.error("poll_cycle_failed", error=str(exc), exc_info=True)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass

    async def stop(self) -> None:
        self._stop_event.set()

    async def run_cycle(self) -> CycleReport:
        """Run a single poll cycle and return what it did."""
        _log.info("poll_cycle_started", services=len(self._fetcher.services))
        report = CycleReport()

        documents: dict[str, DiscoveryDocument] = {}
        for result in await self._fetcher.fetch_all():
            if not result.ok:
                report.failed.append(result.service)
                fetch_failures_total.labels(service=result.service).inc()
                continue
            try:
                documents[result.service] = parse_document(result.content or "")
            except DocumentParseError as exc:
                _log.warning("service_document_unparseable", service=result.service, error=str(exc))
                report.failed.append(result.service)
                fetch_failures_total.labels(service=result.service).inc()
                continue
            report.fetched.append(result.service)

        for service, document in documents.items():
            try:
                logged = await asyncio.to_thread(self.process, service, document, report)
            except StorageError as exc:
                # Snapshot is left untouched so the next cycle diffs again.
                _log.error("service_processing_failed", error=str(exc), **exc.context())
                continue
            if logged is not None:
                report.logged.append(logged)
                if self._dispatcher is not None:
                    self._dispatcher.dispatch(logged)

        stored = self._snapshots.get_all()
        for service in stored:
            if service not in documents and service not in report.failed:
                _log.warning("service_missing", service=service)
                report.missing.append(service)

        poll_cycles_total.inc()
        _log.info(
            "poll_cycle_completed",
            fetched=len(report.fetched),
            failed=len(report.failed),
            changed=len(report.logged),
        )
        return report

    def process(
        self,
        service: str,
        document: DiscoveryDocument,
        report: CycleReport | None = None,
    ) -> LoggedChange | None:
        """Diff *document* against the stored snapshot, log changes, store it.

        Returns the LoggedChange when something changed, else None.

        Raises:
            StorageError: the change log failed, or the snapshot store failed
                with nothing logged.
        """
        previous = self._snapshots.get(service)
        logged: LoggedChange | None = None

        if previous is None:
            _log.info("new_service_discovered", service=service, revision=document.revision)
            if report is not None:
                report.new_services.append(service)
        else:
            change_set = diff(previous, document, service)
            if change_set.is_empty:
                _log.debug("no_changes_detected", service=service)
                if report is not None:
                    report.unchanged.append(service)
            else:
                logged = self._change_log.append(change_set, document)
                changes_logged_total.labels(service=service).inc()

        try:
            self._snapshots.put(service, document)
        except StorageError as exc:
            if logged is None:
                raise
            # Record is durable; keep diffing against the new document.
            _log.error("snapshot_put_failed", error=str(exc), **exc.context())
            self._snapshots.adopt(service, document)
        return logged
