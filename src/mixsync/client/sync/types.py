"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, StorageSpaceError: Exception classes
- SyncReport: Outcome of one sync pass (secondary, non-fatal channel)
- TagSnapshot: Remote tag state fetched ahead of the local write
- TagSyncResult, SavedViewSyncResult: Outcome of the sub-procedures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mixsync.client.api import MixTagRow, Tag

NOT_ENOUGH_SPACE = "Not enough storage space"


class SyncError(Exception):
    """Base exception for sync errors."""


class StorageSpaceError(SyncError):
    """Admission check rejected the pass."""

    def __init__(self, required_bytes: int) -> None:
        self.required_bytes = required_bytes
        super().__init__(NOT_ENOUGH_SPACE)


@dataclass
class SyncReport:
    """Result of a sync pass.

    The status cell stays the authoritative outcome; the report only adds
    counts and the warnings of best-effort steps.
    """

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    downloaded: int = 0
    failed_downloads: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    pending_files: int = 0
    required_bytes: int = 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0


@dataclass
class TagSnapshot:
    """Remote tags and relations fetched for one reconciliation."""

    tags: list[Tag] = field(default_factory=list)
    relations: list[MixTagRow] = field(default_factory=list)


@dataclass
class TagSyncResult:
    """Result of the tag reconciliation sub-procedure."""

    upserted: int = 0
    deleted: int = 0
    relations: int = 0


@dataclass
class SavedViewSyncResult:
    """Result of a saved-view sync."""

    upserted: int = 0
    deleted: int = 0
