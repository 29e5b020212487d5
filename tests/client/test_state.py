"""Tests for the local SQLite store."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from mixsync.client.api import EmbedMetadata
from mixsync.client.models import LocalMix, LocalMixTag, LocalSavedView, LocalTag
from mixsync.client.state import LocalStore
from mixsync.core.types import MixType

CREATED = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


def make_mix(mix_id: str, created_at: datetime = CREATED, **kwargs: object) -> LocalMix:
    return LocalMix(mix_id=mix_id, type=MixType.PHOTO, created_at=created_at, **kwargs)


def make_tag(tag_id: str, name: str) -> LocalTag:
    return LocalTag(tag_id=tag_id, name=name, created_at=CREATED)


@pytest.fixture
def store(tmp_path: Path) -> LocalStore:
    """Create a LocalStore instance."""
    s = LocalStore(tmp_path / "cache.db")
    yield s
    s.close()


class TestStoreCreation:
    """Tests for LocalStore initialization."""

    def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "cache.db"
        s = LocalStore(db_path)

        assert db_path.exists()
        s.close()

    def test_reopens_existing_db(self, tmp_path: Path) -> None:
        """Should keep data across connections."""
        db_path = tmp_path / "cache.db"
        s1 = LocalStore(db_path)
        s1.save_mix(make_mix("m1", title="kept"))
        s1.close()

        s2 = LocalStore(db_path)
        mix = s2.get_mix("m1")
        assert mix is not None
        assert mix.title == "kept"
        s2.close()


class TestMixes:
    """Tests for mix operations."""

    def test_save_and_get_roundtrip(self, store: LocalStore) -> None:
        mix = LocalMix(
            mix_id="m1",
            type=MixType.EMBED,
            created_at=CREATED,
            title="Link",
            embed_og=EmbedMetadata(host="example.com", image_url="https://example.com/i.png"),
            embed_image_url="https://example.com/i.png",
            local_embed_image_path="external/abc/i.png",
            preview_crop_scale=1.5,
            is_synced=True,
        )

        store.save_mix(mix)

        assert store.get_mix("m1") == mix

    def test_get_missing(self, store: LocalStore) -> None:
        assert store.get_mix("nope") is None

    def test_save_replaces(self, store: LocalStore) -> None:
        store.save_mix(make_mix("m1", title="a"))
        store.save_mix(make_mix("m1", title="b"))

        assert [m.title for m in store.list_mixes()] == ["b"]

    def test_list_newest_first(self, store: LocalStore) -> None:
        store.save_mix(make_mix("old", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)))
        store.save_mix(make_mix("new", created_at=datetime(2025, 6, 1, tzinfo=timezone.utc)))

        assert [m.mix_id for m in store.list_mixes()] == ["new", "old"]

    def test_delete_mix_removes_relations(self, store: LocalStore) -> None:
        store.save_mix(make_mix("m1"))
        store.add_mix_tag("m1", "t1")
        store.add_mix_tag("m2", "t1")

        store.delete_mix("m1")

        assert store.get_mix("m1") is None
        assert store.list_mix_tags() == [LocalMixTag("m2", "t1")]


class TestTags:
    """Tests for tag and relation operations."""

    def test_list_tags_by_name(self, store: LocalStore) -> None:
        store.save_tag(make_tag("t2", "zebra"))
        store.save_tag(make_tag("t1", "apple"))

        assert [t.name for t in store.list_tags()] == ["apple", "zebra"]

    def test_delete_tag_removes_relations(self, store: LocalStore) -> None:
        store.save_tag(make_tag("t1", "a"))
        store.add_mix_tag("m1", "t1")

        store.delete_tag("t1")

        assert store.get_tag("t1") is None
        assert store.list_mix_tags() == []

    def test_replace_mix_tags(self, store: LocalStore) -> None:
        """Should replace the whole relation set, dropping duplicates."""
        store.add_mix_tag("m1", "old")

        count = store.replace_mix_tags([
            LocalMixTag("m1", "t1"),
            LocalMixTag("m2", "t1"),
            LocalMixTag("m1", "t1"),
        ])

        assert count == 2
        assert store.list_mix_tags() == [LocalMixTag("m1", "t1"), LocalMixTag("m2", "t1")]

    def test_replace_with_empty_set(self, store: LocalStore) -> None:
        store.add_mix_tag("m1", "t1")
        assert store.replace_mix_tags([]) == 0
        assert store.list_mix_tags() == []

    def test_relations_may_reference_unknown_mix(self, store: LocalStore) -> None:
        store.add_mix_tag("not-cached", "t1")
        assert store.tag_ids_for_mix("not-cached") == ["t1"]

    def test_set_tags_for_mix(self, store: LocalStore) -> None:
        store.add_mix_tag("m1", "t1")
        store.add_mix_tag("m2", "t1")

        store.set_tags_for_mix("m1", ["t2", "t3"])

        assert store.tag_map() == {"m1": {"t2", "t3"}, "m2": {"t1"}}

    def test_tags_for_mix(self, store: LocalStore) -> None:
        store.save_tag(make_tag("t1", "beta"))
        store.save_tag(make_tag("t2", "alpha"))
        store.add_mix_tag("m1", "t1")
        store.add_mix_tag("m1", "t2")

        assert [t.name for t in store.tags_for_mix("m1")] == ["alpha", "beta"]

    def test_remove_mix_tag(self, store: LocalStore) -> None:
        store.add_mix_tag("m1", "t1")
        store.remove_mix_tag("m1", "t1")
        assert store.tag_ids_for_mix("m1") == []


class TestSavedViews:
    """Tests for saved view operations."""

    def test_save_and_list(self, store: LocalStore) -> None:
        view = LocalSavedView(view_id="v1", name="Trips", created_at=CREATED, tag_ids=["t1"])
        store.save_saved_view(view)

        assert store.get_saved_view("v1") == view
        assert store.list_saved_views() == [view]

    def test_delete(self, store: LocalStore) -> None:
        store.save_saved_view(LocalSavedView(view_id="v1", name="x", created_at=CREATED))
        store.delete_saved_view("v1")
        assert store.list_saved_views() == []


class TestTransactions:
    """Tests for explicit transactions and savepoints."""

    def test_rollback_discards_writes(self, store: LocalStore) -> None:
        store.begin()
        store.save_mix(make_mix("m1"))
        store.rollback()

        assert store.get_mix("m1") is None

    def test_commit_keeps_writes(self, store: LocalStore) -> None:
        store.begin()
        assert store.in_transaction
        store.save_mix(make_mix("m1"))
        store.commit()

        assert not store.in_transaction
        assert store.get_mix("m1") is not None

    def test_commit_and_rollback_without_transaction(self, store: LocalStore) -> None:
        store.commit()
        store.rollback()

    def test_savepoint_rolls_back_inner_block_only(self, store: LocalStore) -> None:
        store.begin()
        store.save_mix(make_mix("outer"))
        with pytest.raises(RuntimeError):
            with store.savepoint("inner"):
                store.save_tag(make_tag("t1", "a"))
                raise RuntimeError("fail")
        store.commit()

        assert store.get_mix("outer") is not None
        assert store.get_tag("t1") is None

    def test_savepoint_rejects_bad_name(self, store: LocalStore) -> None:
        with pytest.raises(ValueError):
            with store.savepoint("x; DROP TABLE local_mixes"):
                pass


class TestMaintenance:
    """Tests for clear and sync state."""

    def test_last_sync_at(self, store: LocalStore) -> None:
        assert store.get_last_sync_at() is None
        store.set_last_sync_at(1234.5)
        assert store.get_last_sync_at() == 1234.5

    def test_set_last_sync_at_defaults_to_now(self, store: LocalStore) -> None:
        store.set_last_sync_at()
        value = store.get_last_sync_at()
        assert value is not None and value > 0

    def test_clear(self, store: LocalStore) -> None:
        store.save_mix(make_mix("m1"))
        store.save_tag(make_tag("t1", "a"))
        store.add_mix_tag("m1", "t1")
        store.save_saved_view(LocalSavedView(view_id="v1", name="x", created_at=CREATED))
        store.set_last_sync_at(1.0)

        store.clear()

        assert store.list_mixes() == []
        assert store.list_tags() == []
        assert store.list_mix_tags() == []
        assert store.list_saved_views() == []
        assert store.get_last_sync_at() is None
