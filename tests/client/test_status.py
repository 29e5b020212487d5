"""Tests for the observable sync status."""

from __future__ import annotations

import threading

from mixsync.client.status import SyncStatus, SyncStatusCell
from mixsync.core.types import SyncPhase


class TestSyncStatus:
    """Tests for SyncStatus dataclass."""

    def test_default_is_idle(self) -> None:
        assert SyncStatus() == SyncStatus.idle()
        assert SyncStatus().phase == SyncPhase.IDLE

    def test_downloading_carries_progress(self) -> None:
        status = SyncStatus.downloading(3, 10)
        assert status.is_active
        assert status.describe() == "downloading (3/10)"

    def test_failed_carries_reason(self) -> None:
        status = SyncStatus.failed("Not enough storage space")
        assert not status.is_active
        assert status.describe() == "failed: Not enough storage space"

    def test_describe_simple_phases(self) -> None:
        assert SyncStatus.syncing().describe() == "syncing"
        assert SyncStatus.completed().describe() == "completed"


class TestSyncStatusCell:
    """Tests for SyncStatusCell."""

    def test_initial_value(self) -> None:
        assert SyncStatusCell().value == SyncStatus.idle()
        assert SyncStatusCell(SyncStatus.completed()).value == SyncStatus.completed()

    def test_notifies_subscribers_in_order(self) -> None:
        cell = SyncStatusCell()
        seen: list[tuple[str, SyncStatus]] = []
        cell.subscribe(lambda s: seen.append(("a", s)))
        cell.subscribe(lambda s: seen.append(("b", s)))

        cell.set(SyncStatus.syncing())

        assert seen == [("a", SyncStatus.syncing()), ("b", SyncStatus.syncing())]
        assert cell.value == SyncStatus.syncing()

    def test_equal_value_not_republished(self) -> None:
        cell = SyncStatusCell()
        seen: list[SyncStatus] = []
        cell.subscribe(seen.append)

        cell.set(SyncStatus.downloading(1, 2))
        cell.set(SyncStatus.downloading(1, 2))

        assert seen == [SyncStatus.downloading(1, 2)]

    def test_unsubscribe(self) -> None:
        cell = SyncStatusCell()
        seen: list[SyncStatus] = []
        unsubscribe = cell.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        cell.set(SyncStatus.syncing())

        assert seen == []

    def test_failing_subscriber_does_not_stop_others(self) -> None:
        cell = SyncStatusCell()
        seen: list[SyncStatus] = []

        def broken(status: SyncStatus) -> None:
            raise RuntimeError("boom")

        cell.subscribe(broken)
        cell.subscribe(seen.append)

        cell.set(SyncStatus.completed())

        assert seen == [SyncStatus.completed()]

    def test_subscriber_may_read_value(self) -> None:
        """Callbacks run outside the lock."""
        cell = SyncStatusCell()
        values: list[SyncStatus] = []
        cell.subscribe(lambda s: values.append(cell.value))

        cell.set(SyncStatus.syncing())

        assert values == [SyncStatus.syncing()]

    def test_concurrent_sets(self) -> None:
        cell = SyncStatusCell()

        def worker(n: int) -> None:
            for i in range(50):
                cell.set(SyncStatus.downloading(i, n))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(1, 5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cell.value.phase == SyncPhase.DOWNLOADING
