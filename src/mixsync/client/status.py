"""Observable sync status.

This module provides:
- SyncStatus: Immutable snapshot of the sync engine's state
- SyncStatusCell: Current-value cell with change notification

Architecture:
    SyncEngine ──set()──► SyncStatusCell ──callback──► subscribers (CLI, UI)
                                 ▲
                                 └──── .value ──── pollers
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from mixsync.core.types import SyncPhase

logger = logging.getLogger(__name__)

StatusCallback = Callable[["SyncStatus"], None]


@dataclass(frozen=True)
class SyncStatus:
    """Snapshot of a sync pass.

    Attributes:
        phase: Current phase.
        current: Mixes processed so far (downloading only).
        total: Mixes to process in this pass (downloading only).
        reason: Failure message (failed only).
    """

    phase: SyncPhase = SyncPhase.IDLE
    current: int = 0
    total: int = 0
    reason: str | None = None

    @classmethod
    def idle(cls) -> SyncStatus:
        return cls(SyncPhase.IDLE)

    @classmethod
    def syncing(cls) -> SyncStatus:
        return cls(SyncPhase.SYNCING)

    @classmethod
    def downloading(cls, current: int, total: int) -> SyncStatus:
        return cls(SyncPhase.DOWNLOADING, current=current, total=total)

    @classmethod
    def completed(cls) -> SyncStatus:
        return cls(SyncPhase.COMPLETED)

    @classmethod
    def failed(cls, reason: str) -> SyncStatus:
        return cls(SyncPhase.FAILED, reason=reason)

    @property
    def is_active(self) -> bool:
        return self.phase.is_active

    def describe(self) -> str:
        """Human-readable one-line description."""
        if self.phase == SyncPhase.DOWNLOADING:
            return f"downloading ({self.current}/{self.total})"
        if self.phase == SyncPhase.FAILED:
            return f"failed: {self.reason}"
        return self.phase.value


class SyncStatusCell:
    """Thread-safe holder of the current SyncStatus.

    Usage:
        cell = SyncStatusCell()
        unsubscribe = cell.subscribe(lambda s: print(s.describe()))
        engine = SyncEngine(..., status=cell)
        engine.sync(store)
        unsubscribe()
    """

    def __init__(self, initial: SyncStatus | None = None) -> None:
        self._value = initial or SyncStatus.idle()
        self._lock = threading.Lock()
        self._subscribers: list[StatusCallback] = []

    @property
    def value(self) -> SyncStatus:
        """Get the current status."""
        with self._lock:
            return self._value

    def set(self, status: SyncStatus) -> None:
        """Publish a new status to every subscriber.

        Subscribers are called outside the lock, in subscription order.
        An exception raised by a subscriber is logged and does not stop
        the others.
        """
        with self._lock:
            if status == self._value:
                return
            self._value = status
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(status)
            except Exception:
                logger.exception("Status subscriber failed")

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """Register a callback for status changes.

        Returns:
            Function removing the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe
