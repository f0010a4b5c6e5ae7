"""
Per-invocation state for bucket-backed CLI commands.

Holds the settings resolved from flags and environment, and builds the bucket
only when a command actually touches it, so local commands (finalize,
inspect) never need bucket configuration.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .settings import Settings, create_settings_from_env
from .storage.base import Bucket
from .storage.factory import bucket_from_settings


@dataclass
class CLIContext:
    """Settings plus a lazily created bucket for one command run."""
    settings: Settings
    _bucket: Optional[Bucket] = None

    @classmethod
    def from_env(cls, bucket_url: Optional[str] = None) -> CLIContext:
        """
        Resolve settings for a command.

        Args:
            bucket_url: Value of --bucket; falls back to THANOS_BLOCKS_BUCKET_URL

        Raises:
            ValueError: If no bucket is configured or the configuration is invalid
        """
        return cls(settings=create_settings_from_env(bucket_url))

    @property
    def bucket(self) -> Bucket:
        if self._bucket is None:
            self._bucket = bucket_from_settings(self.settings)
        return self._bucket
