"""Local cache entities.

This module provides:
- MediaField: Describes one downloadable media column of a mix
- MEDIA_FIELDS / fields_for_type: Which media a mix of each type carries
- LocalMix, LocalTag, LocalMixTag, LocalSavedView: Rows of the local store

Architecture:
    A LocalMix mirrors a remote Mix column for column. For every media
    column it also keeps the remote URL it was downloaded from and the
    relative path of the downloaded file inside the media directory.
    The synced flag is stored, but always recomputed from disk by the
    sync engine before it is written.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import TYPE_CHECKING, Any

from mixsync.client.api import EmbedMetadata
from mixsync.core.types import MixType

if TYPE_CHECKING:
    from mixsync.client.api import Mix, SavedView, Tag


@dataclass(frozen=True)
class MediaField:
    """A downloadable media column.

    Attributes:
        name: Short name used in logs.
        remote_attr: Attribute holding the remote URL (on Mix and LocalMix).
        local_attr: LocalMix attribute holding the local relative path.
        types: Mix types carrying this field (None means every type).
    """

    name: str
    remote_attr: str
    local_attr: str
    types: frozenset[MixType] | None = None

    def applies_to(self, mix_type: MixType) -> bool:
        return self.types is None or mix_type in self.types


MEDIA_FIELDS: tuple[MediaField, ...] = (
    MediaField("tts_audio", "tts_audio_url", "local_tts_audio_path", frozenset({MixType.TEXT})),
    MediaField("photo", "photo_url", "local_photo_path", frozenset({MixType.PHOTO})),
    MediaField(
        "photo_thumbnail", "photo_thumbnail_url", "local_photo_thumbnail_path",
        frozenset({MixType.PHOTO}),
    ),
    MediaField("video", "video_url", "local_video_path", frozenset({MixType.VIDEO})),
    MediaField(
        "video_thumbnail", "video_thumbnail_url", "local_video_thumbnail_path",
        frozenset({MixType.VIDEO}),
    ),
    MediaField(
        "import_media", "import_media_url", "local_import_media_path",
        frozenset({MixType.IMPORT}),
    ),
    MediaField(
        "import_thumbnail", "import_thumbnail_url", "local_import_thumbnail_path",
        frozenset({MixType.IMPORT}),
    ),
    MediaField(
        "import_audio", "import_audio_url", "local_import_audio_path",
        frozenset({MixType.IMPORT}),
    ),
    MediaField(
        "embed_image", "embed_image_url", "local_embed_image_path",
        frozenset({MixType.EMBED}),
    ),
    MediaField("audio", "audio_url", "local_audio_path", frozenset({MixType.AUDIO})),
    MediaField("screenshot", "screenshot_url", "local_screenshot_path"),
)


def fields_for_type(mix_type: MixType) -> tuple[MediaField, ...]:
    """Get the media fields a mix of the given type may carry."""
    return tuple(f for f in MEDIA_FIELDS if f.applies_to(mix_type))


# Scalar columns copied verbatim from the remote mix
_SCALAR_ATTRS = (
    "type", "created_at", "title", "caption", "text_content",
    "import_source_url", "embed_url", "embed_og",
    "preview_crop_x", "preview_crop_y", "preview_crop_scale",
    "gradient_top", "gradient_bottom",
)


@dataclass
class LocalMix:
    """Cached copy of a remote mix plus the paths of its downloaded media."""

    mix_id: str
    type: MixType
    created_at: datetime
    title: str | None = None
    caption: str | None = None
    text_content: str | None = None
    import_source_url: str | None = None
    embed_url: str | None = None
    embed_og: EmbedMetadata | None = None
    preview_crop_x: float | None = None
    preview_crop_y: float | None = None
    preview_crop_scale: float | None = None
    gradient_top: str | None = None
    gradient_bottom: str | None = None

    # Remote URLs the local files were (or will be) downloaded from
    tts_audio_url: str | None = None
    photo_url: str | None = None
    photo_thumbnail_url: str | None = None
    video_url: str | None = None
    video_thumbnail_url: str | None = None
    import_media_url: str | None = None
    import_thumbnail_url: str | None = None
    import_audio_url: str | None = None
    embed_image_url: str | None = None
    audio_url: str | None = None
    screenshot_url: str | None = None

    # Paths relative to the media directory
    local_tts_audio_path: str | None = None
    local_photo_path: str | None = None
    local_photo_thumbnail_path: str | None = None
    local_video_path: str | None = None
    local_video_thumbnail_path: str | None = None
    local_import_media_path: str | None = None
    local_import_thumbnail_path: str | None = None
    local_import_audio_path: str | None = None
    local_embed_image_path: str | None = None
    local_audio_path: str | None = None
    local_screenshot_path: str | None = None

    is_synced: bool = False

    @classmethod
    def from_remote(cls, mix: Mix) -> LocalMix:
        """Create a new, not yet downloaded, cache entry for a remote mix."""
        local = cls(mix_id=mix.id, type=mix.type, created_at=mix.created_at)
        local.update_from_remote(mix)
        return local

    def update_from_remote(self, mix: Mix) -> list[MediaField]:
        """Overwrite every mirrored column with the remote values.

        Local paths are kept untouched.

        Returns:
            Media fields whose remote URL changed and already had a local file.
        """
        for attr in _SCALAR_ATTRS:
            setattr(self, attr, getattr(mix, attr))

        stale: list[MediaField] = []
        for media in MEDIA_FIELDS:
            new_url = getattr(mix, media.remote_attr)
            if new_url != getattr(self, media.remote_attr) and getattr(self, media.local_attr):
                stale.append(media)
            setattr(self, media.remote_attr, new_url)
        return stale

    def applicable_fields(self) -> tuple[MediaField, ...]:
        return fields_for_type(self.type)

    def local_paths(self) -> list[str]:
        """Get every local relative path referenced by this mix."""
        paths = [getattr(self, media.local_attr) for media in MEDIA_FIELDS]
        return [p for p in paths if p]

    def missing_fields(self, file_exists: Callable[[str], bool]) -> list[MediaField]:
        """Get applicable fields with a remote URL but no local file."""
        missing = []
        for media in self.applicable_fields():
            if not getattr(self, media.remote_attr):
                continue
            local_path = getattr(self, media.local_attr)
            if not local_path or not file_exists(local_path):
                missing.append(media)
        return missing

    def compute_synced(self, file_exists: Callable[[str], bool]) -> bool:
        """Check that every applicable remote media has an existing local file."""
        return not self.missing_fields(file_exists)

    # === Row conversion ===

    @classmethod
    def column_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def to_row(self) -> dict[str, Any]:
        """Convert to SQLite column values."""
        row = {name: getattr(self, name) for name in self.column_names()}
        row["type"] = self.type.value
        row["created_at"] = self.created_at.isoformat()
        row["embed_og"] = json.dumps(self.embed_og.to_dict()) if self.embed_og else None
        row["is_synced"] = int(self.is_synced)
        return row

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> LocalMix:
        """Create LocalMix from database row."""
        values = {name: row[name] for name in cls.column_names()}
        values["type"] = MixType(row["type"])
        values["created_at"] = datetime.fromisoformat(row["created_at"])
        values["embed_og"] = (
            EmbedMetadata.from_dict(json.loads(row["embed_og"]))
            if row["embed_og"]
            else None
        )
        values["is_synced"] = bool(row["is_synced"])
        return cls(**values)


@dataclass
class LocalTag:
    """Cached copy of a remote tag."""

    tag_id: str
    name: str
    created_at: datetime

    @classmethod
    def from_remote(cls, tag: Tag) -> LocalTag:
        return cls(tag_id=tag.id, name=tag.name, created_at=tag.created_at)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> LocalTag:
        return cls(
            tag_id=row["tag_id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


@dataclass(frozen=True)
class LocalMixTag:
    """Cached (mix_id, tag_id) association."""

    mix_id: str
    tag_id: str


@dataclass
class LocalSavedView:
    """Cached copy of a saved tag filter."""

    view_id: str
    name: str
    created_at: datetime
    tag_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_remote(cls, view: SavedView) -> LocalSavedView:
        return cls(
            view_id=view.id,
            name=view.name,
            created_at=view.created_at,
            tag_ids=list(view.tag_ids),
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> LocalSavedView:
        return cls(
            view_id=row["view_id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
            tag_ids=json.loads(row["tag_ids"]) if row["tag_ids"] else [],
        )
