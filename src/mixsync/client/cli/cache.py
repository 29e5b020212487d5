"""Local cache commands for the mixsync CLI.

Commands:
- status: Summarize the local cache
- list: List cached mixes
- clear: Delete every cached record and media file
"""

from __future__ import annotations

from datetime import datetime

import click

from mixsync.client.cli.config import get_database_path, get_media_dir


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


@click.command()
def status() -> None:
    """Show what the local cache holds."""
    from mixsync.client.files import LocalFileStore
    from mixsync.client.state import LocalStore

    store = LocalStore(get_database_path())
    try:
        mixes = store.list_mixes()
        synced = sum(1 for mix in mixes if mix.is_synced)
        tags = store.list_tags()
        views = store.list_saved_views()
        last_sync_at = store.get_last_sync_at()
    finally:
        store.close()

    file_store = LocalFileStore(get_media_dir())
    try:
        used = file_store.total_storage_used()
    finally:
        file_store.close()

    click.echo(f"Mixes:       {len(mixes)} ({synced} fully synced)")
    click.echo(f"Tags:        {len(tags)}")
    click.echo(f"Saved views: {len(views)}")
    click.echo(f"Media:       {_format_size(used)} in {file_store.base_dir}")
    if last_sync_at is None:
        click.echo("Last sync:   never")
    else:
        click.echo(f"Last sync:   {datetime.fromtimestamp(last_sync_at):%Y-%m-%d %H:%M:%S}")


@click.command(name="list")
@click.option("--tag", "tag_name", default=None, help="Only mixes with this tag.")
@click.option("--media", is_flag=True, help="Show where each media is read from.")
def list_mixes(tag_name: str | None, media: bool) -> None:
    """List cached mixes, newest first."""
    from mixsync.client.files import LocalFileStore
    from mixsync.client.state import LocalStore

    store = LocalStore(get_database_path())
    file_store = LocalFileStore(get_media_dir())
    try:
        tag_names = {tag.tag_id: tag.name for tag in store.list_tags()}
        tag_map = store.tag_map()
        mixes = store.list_mixes()

        if tag_name is not None:
            wanted = {tag_id for tag_id, name in tag_names.items() if name == tag_name}
            mixes = [mix for mix in mixes if tag_map.get(mix.mix_id, set()) & wanted]

        if not mixes:
            click.echo("No mixes.")
            return

        for mix in mixes:
            marker = "✓" if mix.is_synced else "…"
            names = sorted(tag_names[t] for t in tag_map.get(mix.mix_id, set()) if t in tag_names)
            tags_str = f" [{', '.join(names)}]" if names else ""
            click.echo(
                f"{marker} {mix.created_at:%Y-%m-%d} {mix.type.value:<6} "
                f"{mix.title or '(untitled)'}{tags_str}"
            )
            if media:
                for field in mix.applicable_fields():
                    url = file_store.resolve_url(
                        getattr(mix, field.local_attr), getattr(mix, field.remote_attr)
                    )
                    if url:
                        click.echo(f"    {field.name}: {url}")
    finally:
        store.close()
        file_store.close()


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt.",
)
def clear(force: bool) -> None:
    """Delete the local cache.

    Remote mixes are untouched; the next sync downloads everything again.
    """
    from mixsync.client.files import LocalFileStore
    from mixsync.client.state import LocalStore

    if not force:
        click.echo(f"This will delete the cache database and all media in {get_media_dir()}")
        if not click.confirm("Are you sure you want to clear the cache?"):
            click.echo("Aborted.")
            return

    store = LocalStore(get_database_path())
    file_store = LocalFileStore(get_media_dir())
    try:
        store.clear()
        file_store.clear_all()
    finally:
        store.close()
        file_store.close()

    click.echo("Local cache cleared.")
