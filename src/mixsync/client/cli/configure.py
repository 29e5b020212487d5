"""Configure command for the mixsync CLI.

Commands:
- configure: Store the project URL, API key and local settings
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from mixsync.client.cli.config import get_config_file, load_config, save_config


@click.command()
@click.option("--url", "project_url", prompt="Project URL", help="Base URL of the project.")
@click.option(
    "--key", "api_key", prompt="API key", hide_input=True, help="API key of the project."
)
@click.option(
    "--media-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for downloaded media (default: ~/.mixsync/media).",
)
@click.option(
    "--reserve-mb",
    type=click.IntRange(min=0),
    default=None,
    help="Free space (MB) that downloads must never use (default: 100).",
)
@click.option("--check/--no-check", default=True, help="Verify the project is reachable.")
def configure(
    project_url: str,
    api_key: str,
    media_dir: Path | None,
    reserve_mb: int | None,
    check: bool,
) -> None:
    """Configure the remote project and local cache settings."""
    from mixsync.client.api import HTTPClient
    from mixsync.core.config import RemoteConfig

    project_url = project_url.strip()
    if not project_url.startswith(("http://", "https://")):
        click.echo("Error: Project URL must start with http:// or https://", err=True)
        sys.exit(1)

    if check:
        with HTTPClient(RemoteConfig(project_url=project_url, api_key=api_key)) as client:
            if not client.health_check():
                click.echo(
                    f"Error: Cannot reach {project_url} with this key "
                    "(use --no-check to save anyway).",
                    err=True,
                )
                sys.exit(1)

    config = load_config()
    config["project_url"] = project_url.rstrip("/")
    config["api_key"] = api_key
    if media_dir is not None:
        config["media_dir"] = str(media_dir.expanduser().resolve())
    if reserve_mb is not None:
        config["reserve_mb"] = reserve_mb
    save_config(config)

    click.echo(f"Configuration saved to {get_config_file()}")
