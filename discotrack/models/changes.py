"""Change-set and change-log record data structures.

Shapes of a ``Change``:

* addition      -- ``value`` set
* deletion      -- ``old_value`` set (resource/method/parameter deletions
                   carry no payload at all)
* modification  -- ``old_value`` and ``new_value`` set

``None`` means "absent" and is omitted from the persisted record so the
three shapes stay visually distinct.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ChangeTag(StrEnum):
    """Semantic tags derived from a change set."""

    NEW_METHOD = "new_method"
    REMOVED_METHOD = "removed_method"


@dataclass(frozen=True)
class Change:
    """One atomic difference between two documents, addressed by ``path``."""

    path: str
    value: Any = None
    old_value: Any = None
    new_value: Any = None

    @classmethod
    def added(cls, path: str, value: Any) -> Change:
        return cls(path=path, value=value)

    @classmethod
    def removed(cls, path: str, old_value: Any = None) -> Change:
        return cls(path=path, old_value=old_value)

    @classmethod
    def modified(cls, path: str, old_value: Any, new_value: Any) -> Change:
        return cls(path=path, old_value=old_value, new_value=new_value)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"path": self.path}
        if self.value is not None:
            data["value"] = self.value
        if self.old_value is not None:
            data["old_value"] = self.old_value
        if self.new_value is not None:
            data["new_value"] = self.new_value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Change:
        return cls(
            path=data["path"],
            value=data.get("value"),
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
        )


@dataclass(frozen=True)
class ChangeSet:
    """All changes detected between two snapshots of one service.

    Produced once per diff; never mutated afterwards.
    """

    service: str
    additions: tuple[Change, ...] = ()
    modifications: tuple[Change, ...] = ()
    deletions: tuple[Change, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.additions or self.modifications or self.deletions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "modifications": [c.to_dict() for c in self.modifications],
            "additions": [c.to_dict() for c in self.additions],
            "deletions": [c.to_dict() for c in self.deletions],
        }


@dataclass(frozen=True)
class ChangeSummary:
    """Counts per change kind plus the classifier's tags."""

    additions: int
    modifications: int
    deletions: int
    tags: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        return {
            "additions": self.additions,
            "modifications": self.modifications,
            "deletions": self.deletions,
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeSummary:
        return cls(
            additions=int(data["additions"]),
            modifications=int(data["modifications"]),
            deletions=int(data["deletions"]),
            tags=frozenset(data.get("tags", [])),
        )


@dataclass(frozen=True)
class LoggedChange:
    """A persisted change-detection event.

    Identified externally by ``(service, timestamp)``.  Created by the change
    log at append time and immutable afterwards.
    """

    revision: str
    timestamp: int  # unix seconds, assigned at log time
    service: str
    summary: ChangeSummary
    modifications: tuple[Change, ...] = ()
    additions: tuple[Change, ...] = ()
    deletions: tuple[Change, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "revision": self.revision,
            "timestamp": self.timestamp,
            "service": self.service,
            "summary": self.summary.to_dict(),
            "modifications": [c.to_dict() for c in self.modifications],
            "additions": [c.to_dict() for c in self.additions],
            "deletions": [c.to_dict() for c in self.deletions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoggedChange:
        return cls(
            revision=data["revision"],
            timestamp=int(data["timestamp"]),
            service=data["service"],
            summary=ChangeSummary.from_dict(data["summary"]),
            modifications=tuple(Change.from_dict(c) for c in data["modifications"]),
            additions=tuple(Change.from_dict(c) for c in data["additions"]),
            deletions=tuple(Change.from_dict(c) for c in data["deletions"]),
        )
