"""discotrack command-line interface.

Commands:
    run      Start the poll loop and the read API.
    diff     Diff two discovery documents on disk.
    changes  List logged change events, newest first.
    show     Print one logged change event.

JSON goes to stdout; structured logs go to stderr.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from discotrack.config import load_config
from discotrack.models.config import DiscoTrackConfig
from discotrack.observability.logging import setup_logging

if TYPE_CHECKING:
    from discotrack.ledger import ChangeLog


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _load_config() -> DiscoTrackConfig:
    try:
        return load_config()
    except ValueError as exc:
        raise click.ClickException(f"invalid configuration: {exc}") from exc


def _open_change_log(path: str | None) -> ChangeLog:
    from discotrack.ledger import ChangeLog
    from discotrack.storage import StorageError

    config = _load_config()
    try:
        return ChangeLog(path or config.storage.change_log_path)
    except StorageError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    envvar="DISCOTRACK_LOG_LEVEL",
    help="Log level for stderr output.",
)
@click.version_option(package_name="discotrack")
def cli(log_level: str) -> None:
    """discotrack: track changes to API discovery documents."""
    setup_logging(log_level)


@cli.command()
def run() -> None:
    """Start the poll loop and the REST API (configured from DISCOTRACK_* env vars)."""
    from discotrack.app import main

    asyncio.run(main(_load_config()))


@cli.command()
@click.argument("old", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--service", default="local", show_default=True, help="Service name recorded on the change set.")
def diff(old: Path, new: Path, service: str) -> None:
    """Diff two discovery documents and print the change set as JSON."""
    from discotrack.ledger import diff as diff_documents
    from discotrack.models.document import DocumentParseError, parse_document

    documents = []
    for path in (old, new):
        try:
            documents.append(parse_document(path.read_text(encoding="utf-8")))
        except DocumentParseError as exc:
            raise click.ClickException(f"{path}: {exc}") from exc
        except OSError as exc:
            raise click.ClickException(f"{path}: {exc.strerror}") from exc

    _echo_json(diff_documents(documents[0], documents[1], service).to_dict())


@cli.command()
@click.option("--service", default=None, help="Only services whose name starts with this prefix.")
@click.option("--offset", type=click.IntRange(min=0), default=0, show_default=True)
@click.option("--limit", type=click.IntRange(min=1), default=50, show_default=True)
@click.option("--change-log-path", default=None, help="Override DISCOTRACK_CHANGE_LOG_PATH.")
def changes(service: str | None, offset: int, limit: int, change_log_path: str | None) -> None:
    """List logged change summaries, newest first."""
    from discotrack.storage import StorageError

    change_log = _open_change_log(change_log_path)
    try:
        if service:
            records = change_log.list_for_service(service, offset, limit)
        else:
            records = change_log.list_all(offset, limit)
    except StorageError as exc:
        raise click.ClickException(str(exc)) from exc

    _echo_json(
        [
            {
                "service": record.service,
                "timestamp": record.timestamp,
                "revision": record.revision,
                "summary": record.summary.to_dict(),
            }
            for record in records
        ]
    )


@cli.command()
@click.argument("service")
@click.argument("timestamp", type=click.IntRange(min=0))
@click.option("--change-log-path", default=None, help="Override DISCOTRACK_CHANGE_LOG_PATH.")
def show(service: str, timestamp: int, change_log_path: str | None) -> None:
    """Print the full change event logged for SERVICE at TIMESTAMP."""
    from discotrack.storage import StorageError

    change_log = _open_change_log(change_log_path)
    try:
        record = change_log.get(service, timestamp)
    except StorageError as exc:
        raise click.ClickException(str(exc)) from exc

    _echo_json(record.to_dict())
