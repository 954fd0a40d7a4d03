"""Shared fixtures for discotrack integration tests.

Provides real storage components over ``tmp_path`` and a stub fetcher whose
per-cycle responses are set by the test, so poll cycles run end to end
without touching the network.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from discotrack.collector.fetcher import FetchResult
from discotrack.collector.poller import Poller
from discotrack.ledger.change_log import ChangeLog
from discotrack.storage.snapshot_store import SnapshotStore

# ---------------------------------------------------------------------------
# Document factory helpers
# ---------------------------------------------------------------------------


def make_document(revision: str = "20240101", **overrides: Any) -> dict[str, Any]:
    """Build a discovery document dict with one resource and one schema."""
    document: dict[str, Any] = {
        "kind": "discovery#restDescription",
        "discoveryVersion": "v1",
        "title": "Things API",
        "revision": revision,
        "baseUrl": "https://things.example.com/",
        "schemas": {
            "Thing": {
                "id": "Thing",
                "type": "object",
                "properties": {"name": {"type": "string"}},
            }
        },
        "resources": {
            "things": {
                "methods": {
                    "get": {
                        "id": "things.things.get",
                        "path": "v1/{+name}",
                        "httpMethod": "GET",
                        "parameters": {"name": {"type": "string", "location": "path", "required": True}},
                        "response": {"$ref": "Thing"},
                    }
                }
            }
        },
    }
    document.update(overrides)
    return document


def ok(service: str, document: dict[str, Any]) -> FetchResult:
    return FetchResult(service=service, content=json.dumps(document))


def failed(service: str, error: str = "HTTP 503") -> FetchResult:
    return FetchResult(service=service, error=error)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class StepClock:
    """Wall clock that advances one second per read."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 1
        return float(self.now)


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def snapshots(tmp_path: Path) -> SnapshotStore:
    store = SnapshotStore(tmp_path / "storage")
    store.load()
    return store


@pytest.fixture
def change_log(tmp_path: Path) -> ChangeLog:
    return ChangeLog(tmp_path / "changes", clock=StepClock())


@pytest.fixture
def fetcher() -> MagicMock:
    """Stub fetcher; set ``fetcher.fetch_all.return_value`` per cycle."""
    stub = MagicMock()
    stub.services = ["things.example.com"]
    stub.fetch_all = AsyncMock(return_value=[])
    return stub


@pytest.fixture
def dispatcher() -> MagicMock:
    stub = MagicMock()
    stub.dispatch = MagicMock()
    return stub


@pytest.fixture
def poller(fetcher: MagicMock, snapshots: SnapshotStore, change_log: ChangeLog, dispatcher: MagicMock) -> Poller:
    return Poller(
        fetcher=fetcher,
        snapshots=snapshots,
        change_log=change_log,
        dispatcher=dispatcher,
        interval=3600,
    )
