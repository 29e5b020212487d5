"""Shared configuration classes for mixsync.

This module defines the connection settings used by the row-store client,
the blob-store accessor and the local file store.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

DEFAULT_BUCKET = "mix-media"


@dataclass
class RemoteConfig:
    """Configuration for connecting to the remote project.

    Used by HTTPClient for row and blob access, and by LocalFileStore to
    recognize blob-store URLs.

    Attributes:
        project_url: Base URL of the project (e.g., "https://abc.supabase.co").
        api_key: API key sent with every request.
        bucket: Name of the storage bucket holding mix media.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    project_url: str
    api_key: str
    bucket: str = DEFAULT_BUCKET
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize project URL."""
        self.project_url = self.project_url.rstrip("/")

    @property
    def rest_url(self) -> str:
        """Get the row-store base URL."""
        return f"{self.project_url}/rest/v1"

    @property
    def storage_url(self) -> str:
        """Get the blob-store base URL."""
        return f"{self.project_url}/storage/v1"

    @property
    def public_object_prefix(self) -> str:
        """Get the URL prefix of public objects in the media bucket."""
        return f"{self.storage_url}/object/public/{self.bucket}/"

    @property
    def host(self) -> str:
        """Get the project host name (lowercase, without port)."""
        return (urlsplit(self.project_url).hostname or "").lower()

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if the project URL uses HTTPS.
        """
        return self.project_url.startswith("https://")
