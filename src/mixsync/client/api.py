"""HTTP client for the remote row store and blob store.

This module provides:
- HTTPClient: HTTP client for communicating with the remote project
- Row operations (select, insert, update, delete) in PostgREST syntax
- Blob operations (upload, download, public URL) for the media bucket
- Remote models: Mix, EmbedMetadata, Tag, MixTagRow, SavedView
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from mixsync.core.config import RemoteConfig
from mixsync.core.types import MixType

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed or the key lacks permission."""


class ConflictError(APIError):
    """Unique or foreign key conflict detected."""


class NotFoundError(APIError):
    """Resource not found."""


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as returned by the row store."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class EmbedMetadata:
    """Open Graph metadata attached to an embed mix."""

    host: str
    title: str | None = None
    description: str | None = None
    image_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmbedMetadata:
        """Create from API response dictionary."""
        return cls(
            host=data.get("host") or "",
            title=data.get("title"),
            description=data.get("description"),
            image_url=data.get("image_url"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the row-store JSON shape."""
        return {
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "host": self.host,
        }


@dataclass
class Mix:
    """Mix row from the remote store."""

    id: str
    type: MixType
    created_at: datetime
    title: str | None = None
    caption: str | None = None
    text_content: str | None = None
    tts_audio_url: str | None = None
    photo_url: str | None = None
    photo_thumbnail_url: str | None = None
    video_url: str | None = None
    video_thumbnail_url: str | None = None
    import_source_url: str | None = None
    import_media_url: str | None = None
    import_thumbnail_url: str | None = None
    import_audio_url: str | None = None
    embed_url: str | None = None
    embed_og: EmbedMetadata | None = None
    audio_url: str | None = None
    screenshot_url: str | None = None
    preview_crop_x: float | None = None
    preview_crop_y: float | None = None
    preview_crop_scale: float | None = None
    gradient_top: str | None = None
    gradient_bottom: str | None = None

    @property
    def embed_image_url(self) -> str | None:
        """Image URL from the embed metadata, if any."""
        return self.embed_og.image_url if self.embed_og else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Mix:
        """Create from API response dictionary.

        Raises:
            ValueError: If the type is not a known MixType.
            KeyError: If a required column is missing.
        """
        return cls(
            id=data["id"],
            type=MixType(data["type"]),
            created_at=parse_timestamp(data["created_at"]),
            title=data.get("title"),
            caption=data.get("caption"),
            text_content=data.get("text_content"),
            tts_audio_url=data.get("tts_audio_url"),
            photo_url=data.get("photo_url"),
            photo_thumbnail_url=data.get("photo_thumbnail_url"),
            video_url=data.get("video_url"),
            video_thumbnail_url=data.get("video_thumbnail_url"),
            import_source_url=data.get("import_source_url"),
            import_media_url=data.get("import_media_url"),
            import_thumbnail_url=data.get("import_thumbnail_url"),
            import_audio_url=data.get("import_audio_url"),
            embed_url=data.get("embed_url"),
            embed_og=(
                EmbedMetadata.from_dict(data["embed_og"])
                if data.get("embed_og")
                else None
            ),
            audio_url=data.get("audio_url"),
            screenshot_url=data.get("screenshot_url"),
            preview_crop_x=data.get("preview_crop_x"),
            preview_crop_y=data.get("preview_crop_y"),
            preview_crop_scale=data.get("preview_crop_scale"),
            gradient_top=data.get("gradient_top"),
            gradient_bottom=data.get("gradient_bottom"),
        )


@dataclass
class Tag:
    """Tag row from the remote store."""

    id: str
    name: str
    created_at: datetime

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tag:
        """Create from API response dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            created_at=parse_timestamp(data["created_at"]),
        )


@dataclass(frozen=True)
class MixTagRow:
    """Association row between a mix and a tag."""

    mix_id: str
    tag_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MixTagRow:
        """Create from API response dictionary."""
        return cls(mix_id=data["mix_id"], tag_id=data["tag_id"])


@dataclass
class SavedView:
    """Saved tag filter (stored remotely as a playlist)."""

    id: str
    name: str
    created_at: datetime
    tag_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SavedView:
        """Create from API response dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            created_at=parse_timestamp(data["created_at"]),
            tag_ids=list(data.get("tag_ids") or []),
        )


def eq(value: str) -> str:
    """Build a PostgREST equality filter value."""
    return f"eq.{value}"


class HTTPClient:
    """HTTP client for the remote row store and blob store."""

    def __init__(self, config: RemoteConfig) -> None:
        """Initialize the client.

        Args:
            config: Remote configuration with URL, key, and settings.
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.project_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={
                "apikey": config.api_key,
                "Authorization": f"Bearer {config.api_key}",
            },
        )

    @property
    def config(self) -> RemoteConfig:
        """Get the remote configuration."""
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @staticmethod
    def _error_detail(response: httpx.Response, default: str) -> str:
        """Extract an error message from a row-store or storage error body."""
        try:
            body = response.json()
        except ValueError:
            return response.text or default
        if isinstance(body, dict):
            for key in ("message", "error", "detail", "msg"):
                if body.get(key):
                    return str(body[key])
        return default

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code in (401, 403):
            raise AuthenticationError(
                self._error_detail(response, "Invalid API key"), response.status_code
            )
        if response.status_code == 404:
            raise NotFoundError(
                self._error_detail(response, "Resource not found"), 404
            )
        if response.status_code == 409:
            raise ConflictError(self._error_detail(response, "Conflict"), 409)
        if response.status_code >= 400:
            raise APIError(
                self._error_detail(response, "Unknown error"), response.status_code
            )
        return response

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the row store is reachable with the configured key.

        Returns:
            True if the project answers successfully.
        """
        try:
            response = self._client.get("/rest/v1/")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Row operations ===

    def select(
        self,
        table: str,
        columns: str = "*",
        order: str | None = None,
        filters: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """Select rows from a table.

        Args:
            table: Table name.
            columns: Comma-separated column list.
            order: Optional order clause (e.g., "created_at.desc").
            filters: Optional PostgREST filters (e.g., {"id": "eq.abc"}).

        Returns:
            List of row dictionaries.
        """
        params: dict[str, str] = {"select": columns}
        if order:
            params["order"] = order
        if filters:
            params.update(filters)
        response = self._handle_response(
            self._client.get(f"/rest/v1/{table}", params=params)
        )
        rows: list[dict[str, Any]] = response.json()
        return rows

    def insert(
        self,
        table: str,
        payload: dict[str, Any] | list[dict[str, Any]],
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        """Insert one or more rows and return them.

        Args:
            table: Table name.
            payload: Row or list of rows to insert.
            columns: Columns to return.

        Returns:
            Inserted rows as stored.
        """
        response = self._handle_response(
            self._client.post(
                f"/rest/v1/{table}",
                params={"select": columns},
                json=payload,
                headers={"Prefer": "return=representation"},
            )
        )
        rows: list[dict[str, Any]] = response.json()
        return rows

    def update(
        self,
        table: str,
        filters: dict[str, str],
        payload: dict[str, Any],
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        """Update rows matching the filters and return them.

        Args:
            table: Table name.
            filters: PostgREST filters selecting the rows.
            payload: Columns to change.
            columns: Columns to return.

        Returns:
            Updated rows.
        """
        response = self._handle_response(
            self._client.patch(
                f"/rest/v1/{table}",
                params={"select": columns, **filters},
                json=payload,
                headers={"Prefer": "return=representation"},
            )
        )
        rows: list[dict[str, Any]] = response.json()
        return rows

    def delete(self, table: str, filters: dict[str, str]) -> None:
        """Delete rows matching the filters.

        Args:
            table: Table name.
            filters: PostgREST filters selecting the rows (required).

        Raises:
            ValueError: If no filter is given.
        """
        if not filters:
            raise ValueError("Refusing to delete without a filter")
        self._handle_response(self._client.delete(f"/rest/v1/{table}", params=filters))

    # === Blob operations ===

    def _object_path(self, path: str) -> str:
        return f"/storage/v1/object/{self._config.bucket}/{quote(path.lstrip('/'))}"

    def upload_object(self, path: str, data: bytes, content_type: str) -> str:
        """Upload a blob to the media bucket.

        Args:
            path: Object path inside the bucket.
            data: Raw bytes.
            content_type: MIME type stored with the object.

        Returns:
            The object path.
        """
        self._handle_response(
            self._client.post(
                self._object_path(path),
                content=data,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            )
        )
        logger.debug(f"Uploaded {len(data)} bytes to {path}")
        return path

    def download_object(self, path: str) -> bytes:
        """Download a blob from the media bucket.

        Args:
            path: Object path inside the bucket.

        Returns:
            Object content.

        Raises:
            NotFoundError: If the object does not exist.
        """
        response = self._handle_response(self._client.get(self._object_path(path)))
        return response.content

    def public_url(self, path: str) -> str:
        """Get the public URL of an object (no request is made)."""
        return f"{self._config.public_object_prefix}{quote(path.lstrip('/'))}"
