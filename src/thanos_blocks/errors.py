"""
Block error classes.

Every error carries the step and block it failed on in its message and keeps
the underlying failure as ``__cause__`` (``raise ... from err``), so a caller
can walk the chain from "upload index for block X" down to the bucket error.
"""
from __future__ import annotations

from typing import Optional


class BlockError(Exception):
    """Base class for all block lifecycle errors."""
    pass


class BlockValidationError(BlockError, ValueError):
    """
    A block failed a precondition check.

    Raised when:
    - the given path is not a directory
    - a name does not parse as a block ID
    - local metadata is missing or unreadable before upload
    - the block has no external labels
    """
    pass


class MetaNotFoundError(BlockError, FileNotFoundError):
    """
    Metadata file does not exist.

    Locally this means the block was never written; remotely it means the
    block is not published yet (or its upload never finished).
    """
    pass


class MetaDecodeError(BlockError):
    """Metadata exists but is not valid JSON or does not match the schema."""
    pass


class MetaVersionError(MetaDecodeError):
    """Metadata declares a format version this package cannot read."""

    def __init__(self, message: str, version: object = None):
        super().__init__(message)
        self.version = version


class BlockUploadError(BlockError):
    """Upload failed; the partial remote block was removed."""
    pass


class PartialBlockError(BlockUploadError):
    """
    Upload failed and the compensating delete failed too.

    A partial block may remain in the bucket and needs manual cleanup.
    ``__cause__`` is the original upload failure; ``cleanup_error`` is the
    failure of the delete.
    """

    def __init__(self, message: str, block_id: Optional[str] = None,
                 cleanup_error: Optional[BaseException] = None):
        super().__init__(message)
        self.block_id = block_id
        self.cleanup_error = cleanup_error


class BlockDownloadError(BlockError):
    """Fetching block objects from the bucket failed."""
    pass


__all__ = [
    "BlockError",
    "BlockValidationError",
    "MetaNotFoundError",
    "MetaDecodeError",
    "MetaVersionError",
    "BlockUploadError",
    "PartialBlockError",
    "BlockDownloadError",
]
