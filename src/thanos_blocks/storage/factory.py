"""
Bucket construction from settings.
"""
from __future__ import annotations

from ..settings import Settings
from .base import Bucket

__all__ = ["bucket_from_settings"]


def bucket_from_settings(settings: Settings) -> Bucket:
    """
    Create the bucket named by settings.bucket_url.

    Args:
        settings: Validated settings

    Returns:
        FilesystemBucket for file:// URLs, AzureBucket for az:// URLs

    Raises:
        ValueError: For unsupported schemes or incomplete Azure configuration
        BucketError: If a filesystem bucket root can't be created
    """
    if settings.bucket_scheme == "file":
        from .filesystem import FilesystemBucket
        return FilesystemBucket(settings.bucket_location)
    elif settings.bucket_scheme == "az":
        from .azure import AzureBucket
        return AzureBucket(settings.bucket_location, settings=settings)
    else:
        # Settings validation rejects other schemes already
        raise ValueError(f"Unsupported bucket scheme: {settings.bucket_scheme}")
