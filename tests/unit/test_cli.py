"""Unit tests for the click command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from discotrack.cli import cli
from discotrack.ledger.change_log import ChangeLog
from discotrack.models.changes import Change, ChangeSet
from discotrack.models.document import DiscoveryDocument


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.delenv("DISCOTRACK_LOG_LEVEL", raising=False)
    monkeypatch.delenv("DISCOTRACK_SERVICES", raising=False)
    return CliRunner()


def _write(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data))
    return path


def _seed_log(root: Path) -> ChangeLog:
    clock_values = iter([100.0, 200.0])
    log = ChangeLog(root, clock=lambda: next(clock_values))
    for service in ("a.example.com", "b.example.com"):
        log.append(
            ChangeSet(service=service, modifications=(Change.modified("title", "x", "y"),)),
            DiscoveryDocument(revision="9"),
        )
    return log


class TestDiffCommand:
    def test_prints_change_set(self, runner: CliRunner, tmp_path: Path) -> None:
        old = _write(tmp_path / "old.json", {"discoveryVersion": "v1", "revision": "1"})
        new = _write(tmp_path / "new.json", {"discoveryVersion": "v1", "revision": "2", "title": "T"})

        result = runner.invoke(cli, ["diff", str(old), str(new), "--service", "svc"])

        assert result.exit_code == 0, result.output
        body = json.loads(result.stdout)
        assert body == {
            "service": "svc",
            "modifications": [{"path": "revision", "old_value": "1", "new_value": "2"}],
            "additions": [{"path": "title", "value": "T"}],
            "deletions": [],
        }

    def test_unparseable_document_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        old = _write(tmp_path / "old.json", {"revision": "1"})
        bad = tmp_path / "bad.json"
        bad.write_text("[]")

        result = runner.invoke(cli, ["diff", str(old), str(bad)])

        assert result.exit_code != 0
        assert "bad.json" in result.output


class TestChangesCommand:
    def test_lists_newest_first(self, runner: CliRunner, tmp_path: Path) -> None:
        _seed_log(tmp_path)

        result = runner.invoke(cli, ["changes", "--change-log-path", str(tmp_path)])

        assert result.exit_code == 0, result.output
        body = json.loads(result.stdout)
        assert [(item["service"], item["timestamp"]) for item in body] == [
            ("b.example.com", 200),
            ("a.example.com", 100),
        ]
        assert body[0]["summary"]["modifications"] == 1

    def test_service_filter_and_limit(self, runner: CliRunner, tmp_path: Path) -> None:
        _seed_log(tmp_path)

        result = runner.invoke(
            cli,
            ["changes", "--change-log-path", str(tmp_path), "--service", "a.", "--limit", "1"],
        )

        assert result.exit_code == 0, result.output
        assert [item["service"] for item in json.loads(result.stdout)] == ["a.example.com"]


class TestShowCommand:
    def test_prints_record(self, runner: CliRunner, tmp_path: Path) -> None:
        _seed_log(tmp_path)

        result = runner.invoke(cli, ["show", "a.example.com", "100", "--change-log-path", str(tmp_path)])

        assert result.exit_code == 0, result.output
        body = json.loads(result.stdout)
        assert body["revision"] == "9"
        assert body["modifications"] == [{"path": "title", "old_value": "x", "new_value": "y"}]

    def test_missing_record_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["show", "a.example.com", "1", "--change-log-path", str(tmp_path)])

        assert result.exit_code == 1
        assert "no change record" in result.output
