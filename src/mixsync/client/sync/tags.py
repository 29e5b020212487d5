"""Tag and mix-tag reconciliation.

Tags are diffed by id. Mix-tag rows carry no state of their own, so the
local set is simply replaced with the remote one on every pass.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mixsync.client.models import LocalMixTag, LocalTag
from mixsync.client.sync.types import TagSnapshot, TagSyncResult

if TYPE_CHECKING:
    from mixsync.client.repositories import TagRepository
    from mixsync.client.state import LocalStore

logger = logging.getLogger(__name__)


class TagSync:
    """Mirrors remote tags and mix-tag relations into the local store."""

    def __init__(self, repository: TagRepository) -> None:
        self._repository = repository

    def run(self, store: LocalStore) -> TagSyncResult:
        """Reconcile tags and relations.

        Both remote lists are fetched before anything local is touched.
        Does not commit: the caller owns the transaction.

        Raises:
            Any error from the repository or the store.
        """
        return self.apply(store, self.fetch())

    def fetch(self) -> TagSnapshot:
        """Fetch remote tags and relations without touching the store."""
        return TagSnapshot(
            tags=self._repository.list_tags(),
            relations=self._repository.list_mix_tags(),
        )

    def apply(self, store: LocalStore, snapshot: TagSnapshot) -> TagSyncResult:
        """Write a fetched snapshot to the store. Does not commit."""
        result = TagSyncResult()
        remote_ids = {tag.id for tag in snapshot.tags}
        local_tags = {tag.tag_id: tag for tag in store.list_tags()}

        for tag_id in local_tags.keys() - remote_ids:
            store.delete_tag(tag_id)
            result.deleted += 1

        for tag in snapshot.tags:
            local = local_tags.get(tag.id)
            if local and local.name == tag.name and local.created_at == tag.created_at:
                continue
            store.save_tag(LocalTag.from_remote(tag))
            result.upserted += 1

        result.relations = store.replace_mix_tags(
            LocalMixTag(mix_id=row.mix_id, tag_id=row.tag_id) for row in snapshot.relations
        )

        logger.debug(
            f"Tags reconciled: {result.upserted} upserted, {result.deleted} deleted, "
            f"{result.relations} relations"
        )
        return result
