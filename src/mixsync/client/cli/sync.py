"""Sync command for the mixsync CLI.

Commands:
- sync: Run one sync pass against the configured project
"""

from __future__ import annotations

import logging
import sys

import click

from mixsync.client.cli.config import (
    get_database_path,
    get_media_dir,
    get_remote_config,
    get_reserve_bytes,
)
from mixsync.client.status import SyncStatus
from mixsync.core.types import SyncPhase


def configure_logging(verbose: bool) -> None:
    """Send mixsync log records to stderr.

    Only warnings and errors are shown unless verbose is set.
    """
    mixsync_logger = logging.getLogger("mixsync")
    for handler in mixsync_logger.handlers[:]:
        mixsync_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    mixsync_logger.addHandler(handler)
    mixsync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    # Prevent propagation to root logger
    mixsync_logger.propagate = False


def echo_status(status: SyncStatus) -> None:
    """Render status changes as a single progress line."""
    if status.phase == SyncPhase.DOWNLOADING:
        click.echo(f"\r  Processing mixes: {status.current}/{status.total}", nl=False)
        if status.current == status.total:
            click.echo()


@click.command()
@click.option(
    "--views/--no-views", default=True, help="Also sync saved views after the mixes."
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs.")
def sync(views: bool, verbose: bool) -> None:
    """Synchronize the local cache with the remote project.

    Removes mixes deleted remotely, downloads media of new and changed
    mixes, and mirrors tags. Files that fail to download are retried on
    the next run.
    """
    import httpx

    from mixsync.client.api import APIError, HTTPClient
    from mixsync.client.files import LocalFileStore
    from mixsync.client.repositories import (
        MixRepository,
        SavedViewRepository,
        TagRepository,
    )
    from mixsync.client.state import LocalStore
    from mixsync.client.sync import SavedViewSync, SyncEngine

    remote_config = get_remote_config()
    if remote_config is None:
        click.echo("Error: Not configured. Run 'mixsync configure' first.", err=True)
        sys.exit(1)

    configure_logging(verbose)

    client = HTTPClient(remote_config)
    store = LocalStore(get_database_path())
    file_store = LocalFileStore(get_media_dir(), client, reserve_bytes=get_reserve_bytes())
    engine = SyncEngine(MixRepository(client), TagRepository(client), file_store)
    unsubscribe = engine.status.subscribe(echo_status)

    try:
        click.echo(f"Syncing with {remote_config.project_url}...")
        click.echo(f"Media folder: {file_store.base_dir}\n")

        engine.sync(store)
        status = engine.status.value
        report = engine.last_report

        if status.phase == SyncPhase.FAILED:
            click.echo(click.style(f"Sync failed: {status.reason}", fg="red"), err=True)
            sys.exit(1)

        if report is not None:
            if report.failed_downloads:
                click.echo(click.style("\nDownloads to retry:", fg="yellow"))
                for item in report.failed_downloads:
                    click.echo(f"  ✗ {item}")
            for warning in report.warnings:
                click.echo(click.style(f"Warning: {warning}", fg="yellow"))

            click.echo(
                f"\nSync complete: {len(report.created)} new, "
                f"{len(report.updated)} refreshed, "
                f"{len(report.deleted)} removed, "
                f"{report.downloaded} files downloaded"
            )

        if views:
            try:
                result = SavedViewSync(SavedViewRepository(client)).run(store)
                click.echo(f"Saved views: {result.upserted} synced, {result.deleted} removed")
            except (APIError, httpx.HTTPError, ValueError, KeyError) as e:
                click.echo(click.style(f"Warning: saved views not synced: {e}", fg="yellow"))
    finally:
        unsubscribe()
        store.close()
        file_store.close()
        client.close()
