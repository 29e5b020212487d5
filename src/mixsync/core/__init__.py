"""Core module - Shared configuration and types."""

from mixsync.core.config import DEFAULT_BUCKET, RemoteConfig
from mixsync.core.types import MixType, SyncPhase

__all__ = [
    # Config
    "DEFAULT_BUCKET",
    "RemoteConfig",
    # Types
    "MixType",
    "SyncPhase",
]
