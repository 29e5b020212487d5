"""Tests for core configuration classes and types."""

from __future__ import annotations

from mixsync.core.config import DEFAULT_BUCKET, RemoteConfig
from mixsync.core.types import MixType, SyncPhase


class TestRemoteConfig:
    """Tests for RemoteConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with required fields."""
        config = RemoteConfig(project_url="https://abc.supabase.co", api_key="key")
        assert config.project_url == "https://abc.supabase.co"
        assert config.api_key == "key"
        assert config.bucket == DEFAULT_BUCKET
        assert config.timeout == 30.0
        assert config.verify_ssl is True

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from project URL."""
        config = RemoteConfig(project_url="https://abc.supabase.co/", api_key="key")
        assert config.project_url == "https://abc.supabase.co"

    def test_rest_and_storage_urls(self) -> None:
        """Should derive row-store and blob-store base URLs."""
        config = RemoteConfig(project_url="https://abc.supabase.co", api_key="key")
        assert config.rest_url == "https://abc.supabase.co/rest/v1"
        assert config.storage_url == "https://abc.supabase.co/storage/v1"

    def test_public_object_prefix(self) -> None:
        """Should include the bucket in the public prefix."""
        config = RemoteConfig(
            project_url="https://abc.supabase.co", api_key="key", bucket="other"
        )
        assert config.public_object_prefix == (
            "https://abc.supabase.co/storage/v1/object/public/other/"
        )

    def test_host_lowercase_without_port(self) -> None:
        """Should expose the lowercase host name only."""
        config = RemoteConfig(project_url="http://LocalHost:54321", api_key="key")
        assert config.host == "localhost"

    def test_is_secure(self) -> None:
        """Should detect HTTPS URLs."""
        assert RemoteConfig(project_url="https://a.co", api_key="k").is_secure is True
        assert RemoteConfig(project_url="http://a.co", api_key="k").is_secure is False


class TestMixType:
    """Tests for MixType enum."""

    def test_values(self) -> None:
        """Should match the row-store type column."""
        assert {t.value for t in MixType} == {
            "text", "photo", "video", "import", "embed", "audio",
        }


class TestSyncPhase:
    """Tests for SyncPhase enum."""

    def test_active_phases(self) -> None:
        """Only syncing and downloading are active."""
        assert SyncPhase.SYNCING.is_active
        assert SyncPhase.DOWNLOADING.is_active
        assert not SyncPhase.IDLE.is_active
        assert not SyncPhase.COMPLETED.is_active
        assert not SyncPhase.FAILED.is_active

    def test_terminal_phases(self) -> None:
        """Completed and failed end a pass."""
        assert SyncPhase.COMPLETED.is_terminal
        assert SyncPhase.FAILED.is_terminal
        assert not SyncPhase.DOWNLOADING.is_terminal
