"""
Settings and configuration for thanos-blocks.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at bucket construction time.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

__all__ = ["Settings", "create_settings_from_env"]

_BUCKET_URL_RE = re.compile(r"^(?:(file)://(/.*)|(az)://([a-z0-9](?:[a-z0-9-]{1,61}[a-z0-9])?)/?)$")


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for thanos-blocks buckets.

    Bucket Settings:
        bucket_url: Where blocks are stored: file:///abs/path or az://container
        timeout_s: Per-request timeout for remote buckets, in seconds

    Azure Settings:
        az_connection_string: Azure storage connection string
        az_account: Azure storage account name
        az_key: Azure storage account key
        az_blob_endpoint: Custom Azure blob endpoint (for Azurite/private endpoints)
    """
    bucket_url: str
    timeout_s: float = 60.0

    az_connection_string: Optional[str] = None
    az_account: Optional[str] = None
    az_key: Optional[str] = None
    az_blob_endpoint: Optional[str] = None

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.bucket_url:
            raise ValueError("bucket_url is required")

        if not _BUCKET_URL_RE.match(self.bucket_url):
            raise ValueError(f"Invalid bucket_url format: {self.bucket_url}. "
                             "Expected file:///absolute/path or az://container")

        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {self.timeout_s}")

        # Either connection string OR (account + key); partial account config is an error
        has_conn_str = bool(self.az_connection_string)
        has_account_key = bool(self.az_account and self.az_key)

        if has_conn_str and has_account_key:
            raise ValueError("Specify either az_connection_string OR (az_account + az_key), not both")
        if self.az_account and not self.az_key:
            raise ValueError("az_account specified but az_key is missing")
        if self.az_key and not self.az_account:
            raise ValueError("az_key specified but az_account is missing")

    @property
    def bucket_scheme(self) -> str:
        return self.bucket_url.split("://", 1)[0]

    @property
    def bucket_location(self) -> str:
        """Path (file://) or container name (az://) part of bucket_url."""
        location = self.bucket_url.split("://", 1)[1]
        return location if self.bucket_scheme == "file" else location.rstrip("/")


def create_settings_from_env(bucket_url: Optional[str] = None) -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - THANOS_BLOCKS_BUCKET_URL (required unless bucket_url is given)
        - THANOS_BLOCKS_TIMEOUT (default: 60.0)
        - AZURE_STORAGE_CONNECTION_STRING (optional)
        - AZURE_STORAGE_ACCOUNT (optional)
        - AZURE_STORAGE_KEY (optional)
        - THANOS_BLOCKS_AZURE_BLOB_ENDPOINT (optional, for Azurite/custom endpoints)

    Args:
        bucket_url: Overrides THANOS_BLOCKS_BUCKET_URL (e.g. from a CLI flag)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        try:
            return float(value) if value else default
        except ValueError:
            raise ValueError(f"{key} must be a number, got {value!r}")

    bucket_url = bucket_url or os.getenv("THANOS_BLOCKS_BUCKET_URL")
    if not bucket_url:
        raise ValueError("THANOS_BLOCKS_BUCKET_URL environment variable is required")

    return Settings(
        bucket_url=bucket_url,
        timeout_s=get_float("THANOS_BLOCKS_TIMEOUT", 60.0),
        az_connection_string=os.getenv("AZURE_STORAGE_CONNECTION_STRING"),
        az_account=os.getenv("AZURE_STORAGE_ACCOUNT"),
        az_key=os.getenv("AZURE_STORAGE_KEY"),
        az_blob_endpoint=os.getenv("THANOS_BLOCKS_AZURE_BLOB_ENDPOINT"),
    )
