from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from labmap.core.errors import LabmapClientError, StartupConfigError
from labmap.core.logs import configure_logging
from labmap.core.serialization import entries_to_json_dict, entry_to_json_dict
from labmap.core.types import RecordFormat
from labmap.refresh.scheduler import RefreshConfig, RefreshScheduler
from labmap.registry.store import Registry
from labmap.service.client import DEFAULT_TIMEOUT_SECONDS, LabmapClient
from labmap.service.codec import JSON_INDENT, reply_to_bytes
from labmap.service.query import QueryService
from labmap.service.server import ServerConfig, run_server
from labmap.sources import open_source

_FORMATS = click.Choice([f.value for f in RecordFormat])
_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False)


def _source_options(fn):
    fn = click.option(
        "--namespace", default="labmap", show_default=True, envvar="LABMAP_NAMESPACE",
        help="Namespace listed from the config source.",
    )(fn)
    fn = click.option(
        "--format", "record_format", type=_FORMATS, default=RecordFormat.auto.value, show_default=True,
        envvar="LABMAP_FORMAT", help="Raw record format.",
    )(fn)
    fn = click.option(
        "--map", "location", default="lab.map", show_default=True, envvar="LABMAP_MAP",
        help="Lab map file, record directory or key value URL.",
    )(fn)
    return fn


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=JSON_INDENT))


@click.group()
@click.option("--log-level", type=_LEVELS, default="INFO", show_default=True, envvar="LABMAP_LOG_LEVEL")
def cli(log_level: str) -> None:
    """Lab topology directory."""
    configure_logging(log_level)


@cli.command()
@_source_options
@click.option("--host", default="", envvar="LABMAP_HOST", help="Bind address, all interfaces when empty.")
@click.option("--port", type=int, default=8889, show_default=True, envvar="LABMAP_PORT")
@click.option(
    "--interval", type=float, default=0.0, show_default=True, envvar="LABMAP_INTERVAL",
    help="Seconds between refreshes. 0 loads once.",
)
@click.option("--allow-empty-start", is_flag=True, help="Serve an empty registry if the first load fails.")
@click.option("--audit-log", type=click.Path(path_type=Path), default=None, help="Append one JSON line per request.")
def serve(
    location: str,
    record_format: str,
    namespace: str,
    host: str,
    port: int,
    interval: float,
    allow_empty_start: bool,
    audit_log: Path | None,
) -> None:
    """Load the lab map and serve it over HTTP."""
    registry = Registry()
    scheduler = RefreshScheduler(
        source=open_source(location),
        registry=registry,
        config=RefreshConfig(
            namespace=namespace,
            interval_seconds=interval,
            record_format=RecordFormat(record_format),
            allow_empty_start=allow_empty_start,
        ),
    )

    try:
        scheduler.load_initial()
    except StartupConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if not scheduler.config.one_shot:
        scheduler.start(skip_first=True)

    try:
        run_server(ServerConfig(host=host, port=port, audit_path=audit_log), QueryService(registry))
    finally:
        scheduler.stop(timeout=1.0)


@cli.command()
@_source_options
def dump(location: str, record_format: str, namespace: str) -> None:
    """Run one refresh and print the cabinets reply."""
    registry = Registry()
    scheduler = RefreshScheduler(
        source=open_source(location),
        registry=registry,
        config=RefreshConfig(namespace=namespace, record_format=RecordFormat(record_format)),
    )
    try:
        scheduler.load_initial()
    except StartupConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(reply_to_bytes(QueryService(registry).cabinets_reply()).decode("utf-8"))


def _client(url: str, timeout: float) -> LabmapClient:
    return LabmapClient(base_url=url, timeout_seconds=timeout)


_url_option = click.option("--url", default="http://127.0.0.1:8889", show_default=True, envvar="LABMAP_URL")
_timeout_option = click.option("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS, show_default=True)


@cli.command()
@_url_option
@_timeout_option
def machines(url: str, timeout: float) -> None:
    """List machine names from a labmap server."""
    try:
        names = _client(url, timeout).machines()
    except LabmapClientError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)
    _echo_json(names)


@cli.command()
@_url_option
@_timeout_option
def cabinets(url: str, timeout: float) -> None:
    """Print every cabinet entry from a labmap server."""
    try:
        entries = _client(url, timeout).cabinets()
    except LabmapClientError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)
    _echo_json(entries_to_json_dict(entries))


@cli.command()
@click.argument("name")
@_url_option
@_timeout_option
def cabinet(name: str, url: str, timeout: float) -> None:
    """Print the cabinet entry for one machine."""
    try:
        entry = _client(url, timeout).cabinet(name)
    except LabmapClientError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)
    _echo_json(entry_to_json_dict(entry))


if __name__ == "__main__":
    cli()
