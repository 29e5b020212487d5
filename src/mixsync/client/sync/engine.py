"""Sync engine reconciling the remote data set with the local cache.

This module provides:
- SyncEngine: Runs one idempotent reconciliation pass

A pass:
    1. Fetch every remote mix (single request, newest first)
    2. Load every cached mix
    3. Delete cached mixes gone from remote, files first (committed at once)
    4. Split remote mixes into new and existing
    5. Admission check: pending files x flat size estimate vs. free space
    6. Create new mixes and download their media
    7. Refresh existing mixes and download media still missing
    8. Reconcile tags and relations (best-effort, inside a savepoint)
    9. Commit everything from steps 6-8 at once
    10. Delete files of replaced media

Per-file download failures and tag failures never fail the pass: the field
stays empty and the next pass retries it.

Several mixes may point to the same local file, so a file is only deleted
when no remaining mix references it.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import TYPE_CHECKING

from mixsync.client.models import LocalMix, fields_for_type
from mixsync.client.status import SyncStatus, SyncStatusCell
from mixsync.client.sync.tags import TagSync
from mixsync.client.sync.types import StorageSpaceError, SyncReport

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mixsync.client.api import Mix
    from mixsync.client.files import LocalFileStore
    from mixsync.client.repositories import MixRepository, TagRepository
    from mixsync.client.state import LocalStore

logger = logging.getLogger(__name__)

# Flat per-file estimate used by the admission check (not an accounting system)
DEFAULT_ESTIMATED_BYTES_PER_FILE = 5 * 1024 * 1024


class SyncEngine:
    """Coordinates a reconciliation pass between remote and local state."""

    def __init__(
        self,
        mix_repository: MixRepository,
        tag_repository: TagRepository,
        file_store: LocalFileStore,
        status: SyncStatusCell | None = None,
        estimated_bytes_per_file: int = DEFAULT_ESTIMATED_BYTES_PER_FILE,
    ) -> None:
        """Initialize the sync engine.

        Args:
            mix_repository: Remote access to mixes.
            tag_repository: Remote access to tags and relations.
            file_store: Local media directory.
            status: Status cell to publish to (a new one is created if None).
            estimated_bytes_per_file: Size assumed for every pending download.
        """
        self._mixes = mix_repository
        self._file_store = file_store
        self._tag_sync = TagSync(tag_repository)
        self._status = status or SyncStatusCell()
        self._estimated_bytes_per_file = estimated_bytes_per_file
        self._pass_lock = threading.Lock()
        self.last_report: SyncReport | None = None

    @property
    def status(self) -> SyncStatusCell:
        """Get the status cell callers observe."""
        return self._status

    def sync(self, store: LocalStore) -> None:
        """Run one sync pass.

        Never raises: the outcome is published on the status cell, and
        details of the pass are available in last_report.

        Args:
            store: Local store to reconcile.
        """
        if not self._pass_lock.acquire(blocking=False):
            logger.warning("Sync already in progress, ignoring request")
            return

        try:
            report = SyncReport()
            self.last_report = report
            self._status.set(SyncStatus.syncing())
            try:
                self._run(store, report)
            except StorageSpaceError as e:
                logger.warning(
                    f"Sync rejected: {report.pending_files} files "
                    f"(~{e.required_bytes // (1024 * 1024)} MB) do not fit"
                )
                self._status.set(SyncStatus.failed(str(e)))
            except Exception as e:
                self._rollback(store)
                logger.error(f"Sync failed: {e}")
                self._status.set(SyncStatus.failed(str(e) or type(e).__name__))
            else:
                logger.info(
                    f"Sync complete: {len(report.created)} created, "
                    f"{len(report.updated)} updated, {len(report.deleted)} deleted, "
                    f"{report.downloaded} files downloaded, "
                    f"{len(report.failed_downloads)} downloads failed"
                )
                self._status.set(SyncStatus.completed())
        finally:
            self._pass_lock.release()

    def _run(self, store: LocalStore, report: SyncReport) -> None:
        remote_mixes = self._dedupe(self._mixes.list_mixes())
        local_mixes = {mix.mix_id: mix for mix in store.list_mixes()}
        remote_ids = {mix.id for mix in remote_mixes}

        # Deletions never wait for the space check
        deleted_ids = [mix_id for mix_id in local_mixes if mix_id not in remote_ids]
        if deleted_ids:
            removed = [local_mixes.pop(mix_id) for mix_id in deleted_ids]
            referenced = self._referenced_paths(local_mixes.values())
            store.begin()
            for local in removed:
                self._delete_unreferenced(local.local_paths(), referenced)
                store.delete_mix(local.mix_id)
                report.deleted.append(local.mix_id)
                logger.debug(f"Deleted cached mix {local.mix_id}")
            store.commit()
            logger.info(f"Removed {len(deleted_ids)} mixes deleted remotely")

        new_mixes = [mix for mix in remote_mixes if mix.id not in local_mixes]
        existing = [(mix, local_mixes[mix.id]) for mix in remote_mixes if mix.id in local_mixes]

        report.pending_files = self._count_pending(new_mixes, existing)
        report.required_bytes = report.pending_files * self._estimated_bytes_per_file
        if report.pending_files and not self._file_store.has_space_for_download(
            report.required_bytes
        ):
            raise StorageSpaceError(report.required_bytes)

        total = len(new_mixes) + len(existing)
        store.begin()
        if total:
            self._status.set(SyncStatus.downloading(0, total))

        done = 0
        processed: list[LocalMix] = []
        for mix in new_mixes:
            local = LocalMix.from_remote(mix)
            self._materialize(local, report)
            store.save_mix(local)
            processed.append(local)
            report.created.append(mix.id)
            done += 1
            self._status.set(SyncStatus.downloading(done, total))

        # Files of replaced media are removed only after the commit
        stale_paths: list[str] = []
        for mix, local in existing:
            for media in local.update_from_remote(mix):
                stale_paths.append(getattr(local, media.local_attr))
                setattr(local, media.local_attr, None)
            self._materialize(local, report)
            store.save_mix(local)
            processed.append(local)
            report.updated.append(mix.id)
            done += 1
            self._status.set(SyncStatus.downloading(done, total))

        # Remote reads happen before the savepoint takes the store lock
        try:
            snapshot = self._tag_sync.fetch()
            with store.savepoint("tag_sync"):
                self._tag_sync.apply(store, snapshot)
        except Exception as e:
            logger.warning(f"Tag sync failed, will retry next pass: {e}")
            report.warnings.append(f"Tag sync failed: {e}")

        store.set_last_sync_at()
        store.commit()

        if stale_paths:
            self._delete_unreferenced(stale_paths, self._referenced_paths(processed))

    @staticmethod
    def _dedupe(mixes: list[Mix]) -> list[Mix]:
        """Keep the first occurrence of every id, preserving order."""
        seen: set[str] = set()
        unique = []
        for mix in mixes:
            if mix.id in seen:
                logger.warning(f"Duplicate remote mix {mix.id} ignored")
                continue
            seen.add(mix.id)
            unique.append(mix)
        return unique

    def _count_pending(
        self,
        new_mixes: list[Mix],
        existing: list[tuple[Mix, LocalMix]],
    ) -> int:
        """Count media files this pass would have to download."""
        count = 0
        for mix in new_mixes:
            count += sum(
                1 for media in fields_for_type(mix.type) if getattr(mix, media.remote_attr)
            )

        for mix, local in existing:
            for media in fields_for_type(mix.type):
                url = getattr(mix, media.remote_attr)
                if not url:
                    continue
                local_path = getattr(local, media.local_attr)
                if (
                    url != getattr(local, media.remote_attr)
                    or not local_path
                    or not self._file_store.file_exists(local_path)
                ):
                    count += 1
        return count

    def _materialize(self, local: LocalMix, report: SyncReport) -> None:
        """Download every applicable media still missing, then set is_synced."""
        for media in local.missing_fields(self._file_store.file_exists):
            url = getattr(local, media.remote_attr)
            setattr(local, media.local_attr, None)
            try:
                setattr(local, media.local_attr, self._download(url))
                report.downloaded += 1
            except Exception as e:
                logger.warning(f"Failed to download {media.name} of mix {local.mix_id}: {e}")
                report.failed_downloads.append(f"{local.mix_id}/{media.name}")

        local.is_synced = local.compute_synced(self._file_store.file_exists)

    def _download(self, url: str) -> str:
        storage_path = self._file_store.storage_path(url)
        if storage_path:
            return self._file_store.download_from_storage(storage_path)
        return self._file_store.download_from_url(url)

    @staticmethod
    def _referenced_paths(mixes: Iterable[LocalMix]) -> set[str]:
        """Collect every local path the given mixes still point to."""
        return {path for local in mixes for path in local.local_paths()}

    def _delete_unreferenced(self, paths: Iterable[str], referenced: set[str]) -> None:
        """Delete files no remaining mix points to."""
        for path in paths:
            if path in referenced:
                logger.debug(f"Keeping {path}: still used by another mix")
                continue
            self._file_store.delete_file(path)

    @staticmethod
    def _rollback(store: LocalStore) -> None:
        try:
            store.rollback()
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")
