"""Command-line interface for mixsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Store the project URL, API key and local settings
- sync: Synchronize the local cache with the remote project
- status: Summarize the local cache
- list: List cached mixes
- clear: Delete the local cache
"""

from __future__ import annotations

import click

from mixsync.client.cli.cache import clear, list_mixes, status
from mixsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_database_path,
    get_media_dir,
    load_config,
    save_config,
)
from mixsync.client.cli.configure import configure
from mixsync.client.cli.sync import sync


@click.group()
@click.version_option(package_name="mixsync")
def cli() -> None:
    """mixsync - Offline cache for your mixes."""


# Setup
cli.add_command(configure)

# Sync
cli.add_command(sync)

# Local cache
cli.add_command(status)
cli.add_command(list_mixes)
cli.add_command(clear)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_database_path",
    "get_media_dir",
    "load_config",
    "save_config",
]
