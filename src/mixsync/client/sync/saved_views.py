"""Saved-view synchronization.

Runs independently of the main mix pass, with the same approach: fetch the
full remote list, delete what disappeared, upsert the rest, commit once.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mixsync.client.models import LocalSavedView
from mixsync.client.sync.types import SavedViewSyncResult

if TYPE_CHECKING:
    from mixsync.client.repositories import SavedViewRepository
    from mixsync.client.state import LocalStore

logger = logging.getLogger(__name__)


class SavedViewSync:
    """Mirrors remote saved views into the local store."""

    def __init__(self, repository: SavedViewRepository) -> None:
        self._repository = repository

    def run(self, store: LocalStore) -> SavedViewSyncResult:
        """Reconcile saved views and commit.

        Raises:
            Any error from the repository or the store; local changes are
            rolled back first.
        """
        remote_views = self._repository.list_saved_views()
        result = SavedViewSyncResult()

        store.begin()
        try:
            remote_ids = {view.id for view in remote_views}
            for local in store.list_saved_views():
                if local.view_id not in remote_ids:
                    store.delete_saved_view(local.view_id)
                    result.deleted += 1

            for view in remote_views:
                store.save_saved_view(LocalSavedView.from_remote(view))
                result.upserted += 1

            store.commit()
        except Exception:
            store.rollback()
            raise

        logger.info(
            f"Saved views synced: {result.upserted} upserted, {result.deleted} deleted"
        )
        return result
