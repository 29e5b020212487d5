"""Sync operations between the remote project and the local cache.

Architecture:
    MixRepository ─┐
    TagRepository ─┼─► SyncEngine ──► LocalStore + LocalFileStore
                   │       │
                   │       └──► SyncStatusCell ──► callers
    SavedViewRepository ──► SavedViewSync ──► LocalStore

Components:
- **SyncEngine**: One reconciliation pass for mixes, media, tags and relations
- **TagSync**: Tag diff plus wholesale relation replacement
- **SavedViewSync**: Independent saved-view mirror
"""

from mixsync.client.sync.engine import DEFAULT_ESTIMATED_BYTES_PER_FILE, SyncEngine
from mixsync.client.sync.saved_views import SavedViewSync
from mixsync.client.sync.tags import TagSync
from mixsync.client.sync.types import (
    NOT_ENOUGH_SPACE,
    SavedViewSyncResult,
    StorageSpaceError,
    SyncError,
    SyncReport,
    TagSnapshot,
    TagSyncResult,
)

__all__ = [
    # Constants
    "DEFAULT_ESTIMATED_BYTES_PER_FILE",
    "NOT_ENOUGH_SPACE",
    # Types and dataclasses
    "SavedViewSyncResult",
    "StorageSpaceError",
    "SyncError",
    "SyncReport",
    "TagSnapshot",
    "TagSyncResult",
    # Classes
    "SavedViewSync",
    "SyncEngine",
    "TagSync",
]
