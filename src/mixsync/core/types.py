"""Shared types for mixsync.

This module defines enums used by the remote models, the local cache and
the sync engine.
"""

from __future__ import annotations

from enum import Enum


class MixType(str, Enum):
    """Content type of a mix.

    The set is closed: rows carrying any other value are malformed.
    """

    TEXT = "text"
    PHOTO = "photo"
    VIDEO = "video"
    IMPORT = "import"
    EMBED = "embed"
    AUDIO = "audio"


class SyncPhase(str, Enum):
    """Phase of a sync pass.

    Published by the sync engine through its status cell so that callers
    can render progress without depending on the engine itself.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        """Check if a pass is in progress."""
        return self in (SyncPhase.SYNCING, SyncPhase.DOWNLOADING)

    @property
    def is_terminal(self) -> bool:
        """Check if the pass has ended."""
        return self in (SyncPhase.COMPLETED, SyncPhase.FAILED)
