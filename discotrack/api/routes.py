"""Route handlers for the discotrack read API.

Handlers are plain ``def`` functions: the change log and snapshot store do
blocking file I/O, so FastAPI runs them in its worker threadpool.
Storage errors propagate to the exception handlers registered in
``discotrack.api.app``.
"""

from __future__ import annotations

import time
from typing import Annotated

from fastapi import APIRouter, Path, Query, Request

from discotrack.api.schemas import (
    ChangeDetails,
    ChangeItem,
    ChangeSummaryOut,
    DiffEntry,
    DiffResponse,
    PageResponse,
    StatusResponse,
)
from discotrack.ledger.change_log import ChangeLog
from discotrack.models.changes import LoggedChange
from discotrack.storage.snapshot_store import SnapshotStore

router = APIRouter()

_DIFF_ORDER = {"+": 0, "-": 1, "M": 2}

Offset = Annotated[int, Query(ge=0)]
MaxResults = Annotated[int | None, Query(ge=1)]
Timestamp = Annotated[int, Path(ge=0)]


def _change_log(request: Request) -> ChangeLog:
    return request.app.state.change_log


def _snapshots(request: Request) -> SnapshotStore:
    return request.app.state.snapshot_store


def _page_size(request: Request, requested: int | None) -> int:
    cap: int = request.app.state.max_results
    if requested is None:
        return cap
    return min(requested, cap)


def _page(records: list[LoggedChange], offset: int, page_size: int) -> PageResponse:
    """Build the listing envelope from a fetch of ``page_size + 1`` records."""
    return PageResponse(
        data=[ChangeSummaryOut.from_logged(record) for record in records[:page_size]],
        has_more=len(records) > page_size,
        offset=offset,
        max_results=page_size,
    )


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@router.get("/status", response_model=StatusResponse)
def get_status(request: Request) -> StatusResponse:
    uptime = int(time.monotonic() - request.app.state.started_at)
    return StatusResponse(uptime=uptime, services=sorted(_snapshots(request).get_all()))


# ---------------------------------------------------------------------------
# Change listings
# ---------------------------------------------------------------------------


@router.get("/changes", response_model=PageResponse)
def list_changes(
    request: Request,
    offset: Offset = 0,
    max_results: MaxResults = None,
) -> PageResponse:
    """All logged changes, newest first."""
    page_size = _page_size(request, max_results)
    records = _change_log(request).list_all(offset, page_size + 1)
    return _page(records, offset, page_size)


@router.get("/changes/{service}", response_model=PageResponse)
def list_service_changes(
    request: Request,
    service: str,
    offset: Offset = 0,
    max_results: MaxResults = None,
) -> PageResponse:
    """Logged changes for services whose name starts with *service*."""
    page_size = _page_size(request, max_results)
    records = _change_log(request).list_for_service(service, offset, page_size + 1)
    return _page(records, offset, page_size)


# ---------------------------------------------------------------------------
# Single change event
# ---------------------------------------------------------------------------


@router.get(
    "/changes/{service}/{timestamp}",
    response_model=ChangeDetails,
    response_model_exclude_none=True,
)
def get_change(request: Request, service: str, timestamp: Timestamp) -> ChangeDetails:
    change = _change_log(request).get(service, timestamp)
    return ChangeDetails(
        additions=[ChangeItem.from_change(c) for c in change.additions],
        modifications=[ChangeItem.from_change(c) for c in change.modifications],
        deletions=[ChangeItem.from_change(c) for c in change.deletions],
    )


@router.get(
    "/changes/{service}/{timestamp}/diff",
    response_model=DiffResponse,
    response_model_exclude_none=True,
)
def get_change_diff(request: Request, service: str, timestamp: Timestamp) -> DiffResponse:
    """The change event as a flat diff, additions then deletions then modifications."""
    change = _change_log(request).get(service, timestamp)

    entries = [DiffEntry(change_type="+", path=c.path, new_value=c.value) for c in change.additions]
    entries += [DiffEntry(change_type="-", path=c.path, old_value=c.old_value) for c in change.deletions]
    entries += [
        DiffEntry(change_type="M", path=c.path, old_value=c.old_value, new_value=c.new_value)
        for c in change.modifications
    ]
    entries.sort(key=lambda e: (_DIFF_ORDER[e.change_type], e.path))

    return DiffResponse(service=change.service, timestamp=change.timestamp, changes=entries)
