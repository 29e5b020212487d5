"""Local state management for the offline cache.

This module provides:
- LocalStore: SQLite-based storage of cached mixes, tags, relations and
  saved views

Architecture:
    The connection runs in autocommit mode. Callers that need several
    writes to land together open an explicit transaction with begin()
    and finish it with commit() or rollback(). Nested all-or-nothing
    steps use savepoint().

    Media files are not stored here: LocalMix rows only hold relative
    paths into the media directory owned by LocalFileStore.
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
import time
from collections.abc import Iterable, Iterator
from pathlib import Path

from mixsync.client.models import LocalMix, LocalMixTag, LocalSavedView, LocalTag

logger = logging.getLogger(__name__)


class LocalStore:
    """SQLite-based local cache for mirrored remote entities."""

    def __init__(self, db_path: Path) -> None:
        """Initialize local store database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._create_tables()
        self._mix_columns = LocalMix.column_names()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS local_mixes (
                mix_id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                created_at TEXT NOT NULL,
                title TEXT,
                caption TEXT,
                text_content TEXT,
                import_source_url TEXT,
                embed_url TEXT,
                embed_og TEXT,
                preview_crop_x REAL,
                preview_crop_y REAL,
                preview_crop_scale REAL,
                gradient_top TEXT,
                gradient_bottom TEXT,
                tts_audio_url TEXT,
                photo_url TEXT,
                photo_thumbnail_url TEXT,
                video_url TEXT,
                video_thumbnail_url TEXT,
                import_media_url TEXT,
                import_thumbnail_url TEXT,
                import_audio_url TEXT,
                embed_image_url TEXT,
                audio_url TEXT,
                screenshot_url TEXT,
                local_tts_audio_path TEXT,
                local_photo_path TEXT,
                local_photo_thumbnail_path TEXT,
                local_video_path TEXT,
                local_video_thumbnail_path TEXT,
                local_import_media_path TEXT,
                local_import_thumbnail_path TEXT,
                local_import_audio_path TEXT,
                local_embed_image_path TEXT,
                local_audio_path TEXT,
                local_screenshot_path TEXT,
                is_synced INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS local_tags (
                tag_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            -- No foreign keys: relations may reference mixes not cached yet
            CREATE TABLE IF NOT EXISTS local_mix_tags (
                mix_id TEXT NOT NULL,
                tag_id TEXT NOT NULL,
                PRIMARY KEY (mix_id, tag_id)
            );

            CREATE TABLE IF NOT EXISTS local_saved_views (
                view_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                tag_ids TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            -- Key-value sync state
            CREATE TABLE IF NOT EXISTS sync_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # === Transactions ===

    @property
    def in_transaction(self) -> bool:
        """Check if an explicit transaction is open."""
        return self._conn.in_transaction

    def begin(self) -> None:
        """Open a transaction (no-op if one is already open)."""
        with self._lock:
            if not self._conn.in_transaction:
                self._conn.execute("BEGIN")

    def commit(self) -> None:
        """Commit the open transaction, if any."""
        with self._lock:
            if self._conn.in_transaction:
                self._conn.execute("COMMIT")

    def rollback(self) -> None:
        """Roll back the open transaction, if any."""
        with self._lock:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")

    @contextlib.contextmanager
    def savepoint(self, name: str) -> Iterator[None]:
        """Run a block whose writes are undone if it raises.

        Args:
            name: Savepoint identifier (letters and underscores only).
        """
        if not name.replace("_", "").isalpha():
            raise ValueError(f"Invalid savepoint name: {name!r}")
        with self._lock:
            self._conn.execute(f"SAVEPOINT {name}")
            try:
                yield
            except BaseException:
                self._conn.execute(f"ROLLBACK TO {name}")
                self._conn.execute(f"RELEASE {name}")
                raise
            self._conn.execute(f"RELEASE {name}")

    # === Mixes ===

    def get_mix(self, mix_id: str) -> LocalMix | None:
        """Get a cached mix by id.

        Returns:
            LocalMix if found, None otherwise.
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM local_mixes WHERE mix_id = ?", (mix_id,)
            ).fetchone()
        return LocalMix.from_row(row) if row else None

    def list_mixes(self) -> list[LocalMix]:
        """List all cached mixes, newest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM local_mixes ORDER BY created_at DESC"
            ).fetchall()
        return [LocalMix.from_row(row) for row in rows]

    def save_mix(self, mix: LocalMix) -> None:
        """Insert or replace a cached mix."""
        row = mix.to_row()
        placeholders = ", ".join("?" for _ in self._mix_columns)
        with self._lock:
            self._conn.execute(
                f"INSERT OR REPLACE INTO local_mixes ({', '.join(self._mix_columns)}) "
                f"VALUES ({placeholders})",
                [row[name] for name in self._mix_columns],
            )

    def delete_mix(self, mix_id: str) -> None:
        """Delete a cached mix and its tag relations."""
        with self._lock:
            self._conn.execute("DELETE FROM local_mix_tags WHERE mix_id = ?", (mix_id,))
            self._conn.execute("DELETE FROM local_mixes WHERE mix_id = ?", (mix_id,))

    # === Tags ===

    def get_tag(self, tag_id: str) -> LocalTag | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM local_tags WHERE tag_id = ?", (tag_id,)
            ).fetchone()
        return LocalTag.from_row(row) if row else None

    def list_tags(self) -> list[LocalTag]:
        """List all cached tags, ordered by name."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM local_tags ORDER BY name"
            ).fetchall()
        return [LocalTag.from_row(row) for row in rows]

    def save_tag(self, tag: LocalTag) -> None:
        """Insert or replace a cached tag."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO local_tags (tag_id, name, created_at) "
                "VALUES (?, ?, ?)",
                (tag.tag_id, tag.name, tag.created_at.isoformat()),
            )

    def delete_tag(self, tag_id: str) -> None:
        """Delete a cached tag and its relations."""
        with self._lock:
            self._conn.execute("DELETE FROM local_mix_tags WHERE tag_id = ?", (tag_id,))
            self._conn.execute("DELETE FROM local_tags WHERE tag_id = ?", (tag_id,))

    # === Mix-tag relations ===

    def list_mix_tags(self) -> list[LocalMixTag]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT mix_id, tag_id FROM local_mix_tags ORDER BY mix_id, tag_id"
            ).fetchall()
        return [LocalMixTag(mix_id=row["mix_id"], tag_id=row["tag_id"]) for row in rows]

    def replace_mix_tags(self, rows: Iterable[LocalMixTag]) -> int:
        """Replace every relation with the given set.

        Returns:
            Number of relations stored.
        """
        unique = {(row.mix_id, row.tag_id) for row in rows}
        with self._lock:
            self._conn.execute("DELETE FROM local_mix_tags")
            self._conn.executemany(
                "INSERT INTO local_mix_tags (mix_id, tag_id) VALUES (?, ?)",
                sorted(unique),
            )
        return len(unique)

    def add_mix_tag(self, mix_id: str, tag_id: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR IGNORE INTO local_mix_tags (mix_id, tag_id) VALUES (?, ?)",
                (mix_id, tag_id),
            )

    def remove_mix_tag(self, mix_id: str, tag_id: str) -> None:
        with self._lock:
            self._conn.execute(
                "DELETE FROM local_mix_tags WHERE mix_id = ? AND tag_id = ?",
                (mix_id, tag_id),
            )

    def set_tags_for_mix(self, mix_id: str, tag_ids: Iterable[str]) -> None:
        """Replace the tags of a single mix."""
        with self._lock:
            self._conn.execute("DELETE FROM local_mix_tags WHERE mix_id = ?", (mix_id,))
            self._conn.executemany(
                "INSERT OR IGNORE INTO local_mix_tags (mix_id, tag_id) VALUES (?, ?)",
                [(mix_id, tag_id) for tag_id in tag_ids],
            )

    def tag_ids_for_mix(self, mix_id: str) -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT tag_id FROM local_mix_tags WHERE mix_id = ? ORDER BY tag_id",
                (mix_id,),
            ).fetchall()
        return [row["tag_id"] for row in rows]

    def tags_for_mix(self, mix_id: str) -> list[LocalTag]:
        """Get the cached tags attached to a mix, ordered by name."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT t.* FROM local_tags t
                JOIN local_mix_tags mt ON mt.tag_id = t.tag_id
                WHERE mt.mix_id = ?
                ORDER BY t.name
                """,
                (mix_id,),
            ).fetchall()
        return [LocalTag.from_row(row) for row in rows]

    def tag_map(self) -> dict[str, set[str]]:
        """Map each mix id to the set of its tag ids."""
        result: dict[str, set[str]] = {}
        for row in self.list_mix_tags():
            result.setdefault(row.mix_id, set()).add(row.tag_id)
        return result

    # === Saved views ===

    def get_saved_view(self, view_id: str) -> LocalSavedView | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM local_saved_views WHERE view_id = ?", (view_id,)
            ).fetchone()
        return LocalSavedView.from_row(row) if row else None

    def list_saved_views(self) -> list[LocalSavedView]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM local_saved_views ORDER BY name"
            ).fetchall()
        return [LocalSavedView.from_row(row) for row in rows]

    def save_saved_view(self, view: LocalSavedView) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO local_saved_views "
                "(view_id, name, tag_ids, created_at) VALUES (?, ?, ?, ?)",
                (view.view_id, view.name, json.dumps(view.tag_ids), view.created_at.isoformat()),
            )

    def delete_saved_view(self, view_id: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM local_saved_views WHERE view_id = ?", (view_id,))

    # === Maintenance ===

    def clear(self) -> None:
        """Delete every cached record (sync state included)."""
        with self._lock:
            for table in (
                "local_mix_tags",
                "local_mixes",
                "local_tags",
                "local_saved_views",
                "sync_state",
            ):
                self._conn.execute(f"DELETE FROM {table}")

    # === Sync state ===

    def get_state(self, key: str) -> str | None:
        """Get a sync state value."""
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM sync_state WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def set_state(self, key: str, value: str) -> None:
        """Set a sync state value."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO sync_state (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_last_sync_at(self) -> float | None:
        """Get timestamp of last successful sync."""
        value = self.get_state("last_sync_at")
        return float(value) if value else None

    def set_last_sync_at(self, timestamp: float | None = None) -> None:
        """Set timestamp of last successful sync (defaults to now)."""
        self.set_state("last_sync_at", str(timestamp if timestamp is not None else time.time()))
