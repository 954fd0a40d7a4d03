"""Response models for the discotrack REST API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from discotrack.models.changes import Change, LoggedChange


class ErrorResponse(BaseModel):
    """Error envelope returned by every non-2xx response."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"


class StatusResponse(BaseModel):
    """Process uptime and the services with a stored snapshot."""

    uptime: int
    services: list[str]


class SummaryDetails(BaseModel):
    additions: int
    modifications: int
    deletions: int
    tags: list[str] = Field(default_factory=list)


class ChangeSummaryOut(BaseModel):
    """One entry of a change listing."""

    revision: str
    timestamp: int
    service: str
    summary: SummaryDetails

    @classmethod
    def from_logged(cls, change: LoggedChange) -> ChangeSummaryOut:
        return cls(
            revision=change.revision,
            timestamp=change.timestamp,
            service=change.service,
            summary=SummaryDetails(**change.summary.to_dict()),
        )


class PageResponse(BaseModel):
    """Paginated listing envelope."""

    data: list[ChangeSummaryOut]
    has_more: bool
    offset: int
    max_results: int


class ChangeItem(BaseModel):
    path: str
    value: Any = None
    old_value: Any = None
    new_value: Any = None

    @classmethod
    def from_change(cls, change: Change) -> ChangeItem:
        return cls(
            path=change.path,
            value=change.value,
            old_value=change.old_value,
            new_value=change.new_value,
        )


class ChangeDetails(BaseModel):
    """Full change lists of one logged change event."""

    additions: list[ChangeItem]
    modifications: list[ChangeItem]
    deletions: list[ChangeItem]


class DiffEntry(BaseModel):
    """One line of the diff view: ``+`` addition, ``-`` deletion, ``M`` modification."""

    change_type: Literal["+", "-", "M"]
    path: str
    old_value: Any = None
    new_value: Any = None


class DiffResponse(BaseModel):
    service: str
    timestamp: int
    changes: list[DiffEntry]
