"""Configuration utilities for the mixsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from mixsync.client.files import DEFAULT_RESERVE_BYTES
from mixsync.core.config import DEFAULT_BUCKET, RemoteConfig


def get_config_dir() -> Path:
    """Get the configuration directory for mixsync.

    Returns:
        Path to ~/.mixsync or equivalent.
    """
    return Path.home() / ".mixsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_media_dir() -> Path:
    """Get the media directory path.

    Returns:
        Path to the media directory (configured or default ~/.mixsync/media).
    """
    config = load_config()
    if config.get("media_dir"):
        return Path(config["media_dir"]).expanduser().resolve()
    return get_config_dir() / "media"


def get_database_path() -> Path:
    """Get the path of the local cache database."""
    return get_config_dir() / "cache.db"


def get_reserve_bytes() -> int:
    """Get the free-space reserve kept below the volume's free space."""
    config = load_config()
    if config.get("reserve_mb") is not None:
        return int(config["reserve_mb"]) * 1024 * 1024
    return DEFAULT_RESERVE_BYTES


def get_remote_config() -> RemoteConfig | None:
    """Build the remote configuration, or None if not configured."""
    config = load_config()
    if not config.get("project_url") or not config.get("api_key"):
        return None
    return RemoteConfig(
        project_url=config["project_url"],
        api_key=config["api_key"],
        bucket=config.get("bucket") or DEFAULT_BUCKET,
    )
