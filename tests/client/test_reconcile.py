"""Tests for tag and saved-view reconciliation."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from mixsync.client.api import APIError, MixTagRow, SavedView, Tag
from mixsync.client.models import LocalMixTag, LocalSavedView, LocalTag
from mixsync.client.repositories import SavedViewRepository, TagRepository
from mixsync.client.state import LocalStore
from mixsync.client.sync import SavedViewSync, TagSnapshot, TagSync

CREATED = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path: Path) -> LocalStore:
    """Create a LocalStore instance."""
    s = LocalStore(tmp_path / "cache.db")
    yield s
    s.close()


class TestTagSync:
    """Tests for TagSync."""

    @pytest.fixture
    def repository(self) -> MagicMock:
        mock = MagicMock(spec=TagRepository)
        mock.list_tags.return_value = []
        mock.list_mix_tags.return_value = []
        return mock

    def test_counts(self, repository: MagicMock, store: LocalStore) -> None:
        store.save_tag(LocalTag(tag_id="gone", name="old", created_at=CREATED))
        store.save_tag(LocalTag(tag_id="same", name="kept", created_at=CREATED))
        repository.list_tags.return_value = [
            Tag(id="same", name="kept", created_at=CREATED),
            Tag(id="new", name="fresh", created_at=CREATED),
        ]
        repository.list_mix_tags.return_value = [
            MixTagRow("m1", "new"),
            MixTagRow("m1", "new"),
        ]

        result = TagSync(repository).run(store)

        assert result.deleted == 1
        assert result.upserted == 1
        assert result.relations == 1
        assert {t.tag_id for t in store.list_tags()} == {"same", "new"}
        assert store.list_mix_tags() == [LocalMixTag("m1", "new")]

    def test_fetch_error_touches_nothing(self, repository: MagicMock, store: LocalStore) -> None:
        store.save_tag(LocalTag(tag_id="t1", name="a", created_at=CREATED))
        repository.list_mix_tags.side_effect = APIError("down", 503)

        with pytest.raises(APIError):
            TagSync(repository).run(store)

        assert store.get_tag("t1") is not None

    def test_fetch_then_apply(self, repository: MagicMock, store: LocalStore) -> None:
        """Applying a fetched snapshot makes no further remote calls."""
        repository.list_tags.return_value = [Tag(id="t1", name="a", created_at=CREATED)]
        repository.list_mix_tags.return_value = [MixTagRow("m1", "t1")]
        tag_sync = TagSync(repository)

        snapshot = tag_sync.fetch()
        assert snapshot == TagSnapshot(
            tags=[Tag(id="t1", name="a", created_at=CREATED)],
            relations=[MixTagRow("m1", "t1")],
        )
        assert store.list_tags() == []

        repository.reset_mock()
        result = tag_sync.apply(store, snapshot)

        repository.list_tags.assert_not_called()
        repository.list_mix_tags.assert_not_called()
        assert result.upserted == 1
        assert store.list_mix_tags() == [LocalMixTag("m1", "t1")]


class TestSavedViewSync:
    """Tests for SavedViewSync."""

    @pytest.fixture
    def repository(self) -> MagicMock:
        mock = MagicMock(spec=SavedViewRepository)
        mock.list_saved_views.return_value = []
        return mock

    def test_mirrors_remote_views(self, repository: MagicMock, store: LocalStore) -> None:
        store.save_saved_view(LocalSavedView(view_id="gone", name="Old", created_at=CREATED))
        repository.list_saved_views.return_value = [
            SavedView(id="v1", name="Trips", created_at=CREATED, tag_ids=["t1", "t2"]),
        ]

        result = SavedViewSync(repository).run(store)

        assert result.upserted == 1
        assert result.deleted == 1
        assert store.list_saved_views() == [
            LocalSavedView(view_id="v1", name="Trips", created_at=CREATED, tag_ids=["t1", "t2"]),
        ]
        assert not store.in_transaction

    def test_fetch_error_propagates(self, repository: MagicMock, store: LocalStore) -> None:
        store.save_saved_view(LocalSavedView(view_id="v1", name="Kept", created_at=CREATED))
        repository.list_saved_views.side_effect = APIError("down", 503)

        with pytest.raises(APIError):
            SavedViewSync(repository).run(store)

        assert [v.view_id for v in store.list_saved_views()] == ["v1"]

    def test_store_error_rolls_back(self, repository: MagicMock, store: LocalStore) -> None:
        store.save_saved_view(LocalSavedView(view_id="gone", name="Old", created_at=CREATED))
        repository.list_saved_views.return_value = [
            SavedView(id="v1", name="New", created_at=CREATED),
        ]
        store.save_saved_view = MagicMock(side_effect=RuntimeError("disk full"))  # type: ignore[method-assign]

        with pytest.raises(RuntimeError):
            SavedViewSync(repository).run(store)

        assert not store.in_transaction
        assert [v.view_id for v in store.list_saved_views()] == ["gone"]
