"""Local media directory for downloaded blobs.

This module provides:
- LocalFileStore: Materializes remote media under a private directory
- FileStoreError, DownloadError: Exception classes

Layout:
    media_dir/
    ├── 1b4e28ba-2fa1-11d2-883f-0016d3cca427/    # Blob-store objects keep
    │   └── photo.jpg                            # their bucket path
    └── external/                                # Any other URL
        └── 9f86d081884c7d65/cover.jpg           # sha256(url)[:16]/filename

All paths handed out are relative to media_dir, so the directory can be
moved without rewriting the local store.
"""

from __future__ import annotations

import contextlib
import hashlib
import logging
import re
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO
from urllib.parse import unquote, urlsplit

import httpx

from mixsync.client.api import APIError

if TYPE_CHECKING:
    from mixsync.client.api import HTTPClient

logger = logging.getLogger(__name__)

# Free space kept untouched below the raw free space of the volume
DEFAULT_RESERVE_BYTES = 100 * 1024 * 1024

EXTERNAL_DIR = "external"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class FileStoreError(Exception):
    """Base exception for local file store errors."""


class DownloadError(FileStoreError):
    """Failed to materialize a remote file locally."""


class LocalFileStore:
    """Manages downloaded media as relative paths under a base directory."""

    def __init__(
        self,
        base_dir: Path,
        client: HTTPClient | None = None,
        reserve_bytes: int = DEFAULT_RESERVE_BYTES,
        http: httpx.Client | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the file store.

        Args:
            base_dir: Media directory (created if missing).
            client: Remote client used for blob-store downloads (None for
                offline use: no URL is then recognized as a blob URL).
            reserve_bytes: Safety margin kept below the volume's free space.
            http: Client for external URLs (a plain one is created if None).
            timeout: Timeout for external downloads in seconds.
        """
        self._base_dir = Path(base_dir).expanduser().resolve()
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._client = client
        self._reserve_bytes = reserve_bytes
        self._owns_http = http is None
        # No project headers here: external hosts must never see the API key
        self._http = http or httpx.Client(follow_redirects=True, timeout=timeout)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def close(self) -> None:
        """Close the external HTTP client if this store created it."""
        if self._owns_http:
            self._http.close()

    # === Path utilities ===

    def file_path(self, relative_path: str) -> Path:
        """Get the absolute path of a relative media path (no I/O)."""
        return self._base_dir / relative_path

    def file_exists(self, relative_path: str) -> bool:
        return self.file_path(relative_path).is_file()

    def resolve_url(self, local_path: str | None, remote_url: str | None) -> str | None:
        """Prefer the local file (as a file:// URI) over the remote URL."""
        if local_path and self.file_exists(local_path):
            return self.file_path(local_path).as_uri()
        return remote_url

    def _safe_destination(self, relative_path: str) -> Path:
        destination = (self._base_dir / relative_path).resolve()
        if not destination.is_relative_to(self._base_dir) or destination == self._base_dir:
            raise DownloadError(f"Refusing path outside media directory: {relative_path}")
        return destination

    # === Blob-store paths ===

    def storage_path(self, url: str) -> str | None:
        """Extract the bucket path from a blob-store URL.

        Example:
            https://abc.supabase.co/storage/v1/object/public/mix-media/UUID/file.jpg
            -> UUID/file.jpg

        Returns:
            The object path, or None for any URL outside the project's bucket.
        """
        if self._client is None:
            return None
        config = self._client.config
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https"):
            return None
        if (parts.hostname or "").lower() != config.host:
            return None

        segments = [unquote(s) for s in parts.path.split("/") if s]
        if segments[:3] != ["storage", "v1", "object"]:
            return None
        # object/<bucket>/... or object/<public|authenticated|sign>/<bucket>/...
        for idx in (3, 4):
            if len(segments) > idx + 1 and segments[idx] == config.bucket:
                return "/".join(segments[idx + 1:])
        return None

    # === Downloads ===

    def download_from_storage(self, path: str) -> str:
        """Download a blob by bucket path.

        The file is stored under the same relative path. Nothing is
        transferred if the file already exists.

        Returns:
            Relative path of the local file.

        Raises:
            DownloadError: On transport, storage, or I/O failure.
        """
        relative_path = path.lstrip("/")
        destination = self._safe_destination(relative_path)
        if destination.is_file():
            return relative_path
        if self._client is None:
            raise DownloadError(f"No remote client to download {relative_path}")

        try:
            data = self._client.download_object(relative_path)
        except (APIError, httpx.HTTPError) as e:
            raise DownloadError(f"Failed to download {relative_path}: {e}") from e

        self._write_atomic(destination, lambda f: f.write(data))
        logger.debug(f"Downloaded {relative_path} ({len(data)} bytes)")
        return relative_path

    def download_from_url(self, url: str) -> str:
        """Download an arbitrary URL.

        Returns:
            Relative path of the local file (external/<hash>/<filename>).

        Raises:
            DownloadError: On transport or I/O failure.
        """
        relative_path = self.external_path(url)
        destination = self._safe_destination(relative_path)
        if destination.is_file():
            return relative_path

        def _stream(f: BinaryIO) -> None:
            with self._http.stream("GET", url) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes():
                    f.write(chunk)

        try:
            self._write_atomic(destination, _stream)
        except httpx.HTTPError as e:
            raise DownloadError(f"Failed to download {url}: {e}") from e
        logger.debug(f"Downloaded {url} -> {relative_path}")
        return relative_path

    @staticmethod
    def external_path(url: str) -> str:
        """Get the deterministic relative path used for an external URL."""
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
        name = unquote(urlsplit(url).path.rsplit("/", 1)[-1])
        name = _UNSAFE_FILENAME_CHARS.sub("_", name)
        if name in ("", ".", ".."):
            name = "file"
        return f"{EXTERNAL_DIR}/{digest}/{name}"

    def _write_atomic(self, destination: Path, write: Callable[..., object]) -> None:
        """Write through a .tmp sibling, then rename into place."""
        tmp_path = destination.with_name(destination.name + ".tmp")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                write(f)
            tmp_path.replace(destination)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise DownloadError(f"Failed to write {destination.name}: {e}") from e
        except Exception:
            # Clean up temp file on failure
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise

    # === File management ===

    def delete_file(self, relative_path: str) -> None:
        """Delete a media file; missing files are ignored.

        The parent directory is removed as well once it is empty.
        """
        path = self.file_path(relative_path).resolve()
        if not path.is_relative_to(self._base_dir) or path == self._base_dir:
            logger.warning(f"Ignoring delete outside media directory: {relative_path}")
            return
        with contextlib.suppress(FileNotFoundError):
            path.unlink()

        parent = path.parent
        if parent != self._base_dir and parent.is_dir() and not any(parent.iterdir()):
            with contextlib.suppress(OSError):
                parent.rmdir()

    def total_storage_used(self) -> int:
        """Total size in bytes of all downloaded media."""
        return sum(p.stat().st_size for p in self._base_dir.rglob("*") if p.is_file())

    def clear_all(self) -> None:
        """Delete every downloaded file."""
        shutil.rmtree(self._base_dir, ignore_errors=True)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    # === Storage headroom ===

    def available_space(self) -> int:
        """Free bytes on the volume holding the media directory."""
        return shutil.disk_usage(self._base_dir).free

    def has_space_for_download(self, estimated_bytes: int) -> bool:
        """Check if estimated_bytes fit while keeping the reserve free."""
        return self.available_space() > estimated_bytes + self._reserve_bytes
