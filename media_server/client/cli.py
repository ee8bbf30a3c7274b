"""Command-line client for the media server."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Any, NoReturn

import click
import httpx

from media_server.client.notifications import Notification, NotificationBuffer, bind_scheduler
from media_server.client.scheduler import TransferScheduler, http_transport
from media_server.client.transport import DEFAULT_SERVER_URL, MediaClient
from media_server.config import get_package_version
from media_server.errors import MediaServerError
from media_server.services.utils import plural

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(*, quiet: bool = False, verbose: bool = False) -> None:
    """Configure stderr logging for the client."""
    level = logging.INFO
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, stream=sys.stderr)

    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class CliContext:
    """CLI context object passed to commands."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self.transport = transport
        self.server_url = DEFAULT_SERVER_URL
        self.code: str | None = None
        self.client: MediaClient | None = None

    def get_client(self) -> MediaClient:
        """Get or create an authenticated client."""
        if self.client is not None:
            return self.client
        if not self.code:
            raise click.UsageError("Access code required: pass --code or set MEDIA_AUTH_CODE")
        client = MediaClient(self.server_url, transport=self.transport)
        client.authenticate(self.code)
        self.client = client
        return client


pass_context = click.make_pass_decorator(CliContext, ensure=True)


def _fail(e: MediaServerError) -> NoReturn:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=get_package_version(), prog_name="media-client")
@click.option("--server", envvar="MEDIA_SERVER_URL", default=DEFAULT_SERVER_URL, show_default=True)
@click.option("--code", envvar="MEDIA_AUTH_CODE", help="Shared access code")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.option("-q", "--quiet", is_flag=True, help="Only show errors")
@click.pass_context
def cli(
    ctx: click.Context, server: str, code: str | None, verbose: bool, quiet: bool
) -> None:
    """media-client - browse and upload to a personal media server."""
    obj = ctx.ensure_object(CliContext)
    obj.server_url = server
    obj.code = code
    setup_logging(quiet=quiet, verbose=verbose)


@cli.command()
@pass_context
def login(ctx: CliContext) -> None:
    """Check the access code against the server."""
    try:
        ctx.get_client()
    except MediaServerError as e:
        _fail(e)
    click.echo(f"Authenticated with {ctx.server_url}")


@cli.command("ls")
@click.argument("path", default="")
@pass_context
def list_folder(ctx: CliContext, path: str) -> None:
    """List folders and media files in PATH."""
    try:
        listing = ctx.get_client().list_folder(path)
    except MediaServerError as e:
        _fail(e)

    for folder in listing.get("folders", []):
        click.echo(f"{folder['name']}/")
    for f in listing.get("files", []):
        click.echo(f"{f['name']}\t{f['type']}")


@cli.command()
@click.argument("name")
@click.option("--parent", default="", help="Parent folder path")
@pass_context
def mkdir(ctx: CliContext, name: str, parent: str) -> None:
    """Create folder NAME (no error if it exists)."""
    try:
        path = ctx.get_client().create_folder(name, parent)
    except MediaServerError as e:
        _fail(e)
    click.echo(path)


@cli.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--folder", default="", help="Destination folder path")
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=5,
    show_default=True,
    help="Transfers per wave",
)
@pass_context
def upload(ctx: CliContext, files: tuple[Path, ...], folder: str, concurrency: int) -> None:
    """Upload FILES into --folder, a few at a time."""
    try:
        client = ctx.get_client()
    except MediaServerError as e:
        _fail(e)

    finished: dict[str, dict[str, Any]] = {}
    lock = threading.Lock()

    def on_event(event: dict[str, Any]) -> None:
        if event["type"] != "transfer_updated":
            return
        transfer = event["transfer"]
        if transfer["state"] not in ("completed", "error"):
            return
        with lock:
            if transfer["id"] in finished:
                return
            finished[transfer["id"]] = transfer
        if transfer["state"] == "completed":
            click.echo(f"  ok    {transfer['display_name']} -> {transfer['stored_path']}")
        else:
            click.echo(f"  fail  {transfer['display_name']}: {transfer['error_message']}", err=True)

    def on_notification(note: Notification | None) -> None:
        if note is not None:
            click.echo(note.message)

    def on_batch_complete(destination: str) -> None:
        listing = client.list_folder(destination)
        click.echo(f"{destination or '/'} now holds {plural(len(listing['files']), 'file')}")

    scheduler = TransferScheduler(
        http_transport(client), max_concurrent=concurrency, on_batch_complete=on_batch_complete
    )
    notices = NotificationBuffer()
    notices.subscribe(on_notification)
    bind_scheduler(notices, scheduler)
    scheduler.subscribe(on_event)

    scheduler.submit(files, folder)
    scheduler.wait_idle()
    scheduler.close()

    failed = sum(1 for t in finished.values() if t["state"] == "error")
    if failed:
        sys.exit(1)


@cli.command("rm")
@click.argument("paths", nargs=-1)
@click.option("--all", "all_in", metavar="FOLDER", default=None, help="Delete every file in FOLDER")
@pass_context
def remove(ctx: CliContext, paths: tuple[str, ...], all_in: str | None) -> None:
    """Delete files by path, or every file in a folder with --all."""
    if not paths and all_in is None:
        raise click.UsageError("Give file paths or --all FOLDER")

    try:
        client = ctx.get_client()
        if all_in is not None:
            payload = client.delete_all(all_in)
            results = payload.get("results", [])
            label = "name"
        elif len(paths) == 1:
            client.delete_file(paths[0])
            results = [{"path": paths[0], "success": True}]
            label = "path"
        else:
            results = client.delete_files(list(paths))
            label = "path"
    except MediaServerError as e:
        _fail(e)

    failures = 0
    for r in results:
        if r.get("success"):
            click.echo(f"deleted {r[label]}")
        else:
            failures += 1
            click.echo(f"failed  {r[label]}: {r.get('error', 'unknown error')}", err=True)
    if failures:
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
