"""Typed repositories over the remote row store.

This module provides:
- MixRepository: CRUD for mixes plus media upload/download
- TagRepository: CRUD for tags and mix-tag relations
- SavedViewRepository: CRUD for saved tag filters
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from mixsync.client.api import Mix, MixTagRow, NotFoundError, SavedView, Tag, eq

if TYPE_CHECKING:
    from mixsync.client.api import HTTPClient

logger = logging.getLogger(__name__)

# All mix columns except the search-only ones (content_tsv, content_embedding)
MIX_COLUMNS = ",".join([
    "id", "type", "created_at", "title", "caption",
    "text_content", "tts_audio_url",
    "photo_url", "photo_thumbnail_url",
    "video_url", "video_thumbnail_url",
    "import_source_url", "import_media_url", "import_thumbnail_url", "import_audio_url",
    "embed_url", "embed_og",
    "audio_url",
    "screenshot_url", "preview_crop_x", "preview_crop_y", "preview_crop_scale",
    "gradient_top", "gradient_bottom",
])


def _single(rows: list[dict[str, Any]], what: str) -> dict[str, Any]:
    if not rows:
        raise NotFoundError(f"{what} not found", 404)
    return rows[0]


class MixRepository:
    """Remote access to the mixes table and the media bucket."""

    table = "mixes"

    def __init__(self, client: HTTPClient) -> None:
        self._client = client

    def list_mixes(self) -> list[Mix]:
        """List every mix, newest first."""
        rows = self._client.select(self.table, MIX_COLUMNS, order="created_at.desc")
        return [Mix.from_dict(row) for row in rows]

    def get_mix(self, mix_id: str) -> Mix:
        """Get a mix by id.

        Raises:
            NotFoundError: If no mix has this id.
        """
        rows = self._client.select(self.table, MIX_COLUMNS, filters={"id": eq(mix_id)})
        return Mix.from_dict(_single(rows, f"Mix {mix_id}"))

    def create_mix(self, payload: dict[str, Any]) -> Mix:
        """Create a mix from a column payload (must include "type")."""
        rows = self._client.insert(self.table, payload, columns=MIX_COLUMNS)
        mix = Mix.from_dict(_single(rows, "Created mix"))
        logger.info(f"Created {mix.type.value} mix {mix.id}")
        return mix

    def update_mix(self, mix_id: str, payload: dict[str, Any]) -> Mix:
        """Update columns of a mix."""
        rows = self._client.update(
            self.table, {"id": eq(mix_id)}, payload, columns=MIX_COLUMNS
        )
        return Mix.from_dict(_single(rows, f"Mix {mix_id}"))

    def update_title(self, mix_id: str, title: str | None) -> Mix:
        """Set or clear the title of a mix."""
        return self.update_mix(mix_id, {"title": title})

    def delete_mix(self, mix_id: str) -> None:
        """Delete a mix."""
        self._client.delete(self.table, {"id": eq(mix_id)})
        logger.info(f"Deleted mix {mix_id}")

    # === Storage ===

    def upload_media(self, data: bytes, file_name: str, content_type: str) -> str:
        """Upload media under a fresh unique prefix.

        Returns:
            Public URL of the uploaded object.
        """
        path = f"{uuid.uuid4()}/{file_name}"
        self._client.upload_object(path, data, content_type)
        return self._client.public_url(path)

    def download_media(self, path: str) -> bytes:
        """Download media by object path."""
        return self._client.download_object(path)


class TagRepository:
    """Remote access to the tags and mix_tags tables."""

    tags_table = "tags"
    mix_tags_table = "mix_tags"

    def __init__(self, client: HTTPClient) -> None:
        self._client = client

    def list_tags(self) -> list[Tag]:
        """List every tag, ordered by name."""
        rows = self._client.select(self.tags_table, "id,name,created_at", order="name.asc")
        return [Tag.from_dict(row) for row in rows]

    def create_tag(self, name: str) -> Tag:
        rows = self._client.insert(self.tags_table, {"name": name})
        return Tag.from_dict(_single(rows, "Created tag"))

    def update_tag(self, tag_id: str, name: str) -> Tag:
        rows = self._client.update(self.tags_table, {"id": eq(tag_id)}, {"name": name})
        return Tag.from_dict(_single(rows, f"Tag {tag_id}"))

    def delete_tag(self, tag_id: str) -> None:
        """Delete a tag and its relations."""
        self._client.delete(self.mix_tags_table, {"tag_id": eq(tag_id)})
        self._client.delete(self.tags_table, {"id": eq(tag_id)})

    # === Mix-tag relations ===

    def list_mix_tags(self) -> list[MixTagRow]:
        """List every (mix_id, tag_id) row."""
        rows = self._client.select(self.mix_tags_table, "mix_id,tag_id")
        return [MixTagRow.from_dict(row) for row in rows]

    def add_tag_to_mix(self, mix_id: str, tag_id: str) -> None:
        self._client.insert(self.mix_tags_table, {"mix_id": mix_id, "tag_id": tag_id})

    def remove_tag_from_mix(self, mix_id: str, tag_id: str) -> None:
        self._client.delete(
            self.mix_tags_table, {"mix_id": eq(mix_id), "tag_id": eq(tag_id)}
        )


class SavedViewRepository:
    """Remote access to saved views (the playlists table)."""

    table = "playlists"

    def __init__(self, client: HTTPClient) -> None:
        self._client = client

    def list_saved_views(self) -> list[SavedView]:
        """List every saved view, ordered by name."""
        rows = self._client.select(self.table, order="name.asc")
        return [SavedView.from_dict(row) for row in rows]

    def create_saved_view(self, name: str, tag_ids: list[str]) -> SavedView:
        rows = self._client.insert(self.table, {"name": name, "tag_ids": tag_ids})
        return SavedView.from_dict(_single(rows, "Created saved view"))

    def update_tag_ids(self, view_id: str, tag_ids: list[str]) -> SavedView:
        rows = self._client.update(self.table, {"id": eq(view_id)}, {"tag_ids": tag_ids})
        return SavedView.from_dict(_single(rows, f"Saved view {view_id}"))

    def update_name(self, view_id: str, name: str) -> SavedView:
        rows = self._client.update(self.table, {"id": eq(view_id)}, {"name": name})
        return SavedView.from_dict(_single(rows, f"Saved view {view_id}"))

    def delete_saved_view(self, view_id: str) -> None:
        self._client.delete(self.table, {"id": eq(view_id)})
