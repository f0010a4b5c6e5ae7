"""
Storage interfaces for thanos-blocks.

The Bucket protocol is the boundary between the block transfer logic and
object store implementations, enabling dependency injection and testing with
fakes. Keys are POSIX-style paths relative to the bucket root.
"""
from __future__ import annotations

from typing import IO, Iterator, Protocol, runtime_checkable

__all__ = ["Bucket", "DIR_DELIMITER"]

# Separator between key path elements; iter() marks "directories" with a trailing one.
DIR_DELIMITER = "/"


@runtime_checkable
class Bucket(Protocol):
    """Protocol for object store operations used by block transfers."""

    @property
    def name(self) -> str:
        """Human readable bucket name for logs and errors."""
        ...

    def iter(self, prefix: str) -> Iterator[str]:
        """
        List the direct children of a prefix.

        Args:
            prefix: Directory-like key prefix; "" lists the bucket root. A
                trailing delimiter is optional.

        Returns:
            Full keys of objects directly under prefix, and of nested
            "directories" with a trailing DIR_DELIMITER. A missing prefix
            yields nothing.

        Raises:
            BucketError: For listing failures
        """
        ...

    def get(self, key: str) -> IO[bytes]:
        """
        Open an object for reading. The caller closes the returned stream.

        Raises:
            ObjectNotFoundError: If object does not exist
            BucketError: For other failures
        """
        ...

    def exists(self, key: str) -> bool:
        """
        Check whether an object exists.

        Raises:
            BucketError: If existence can't be determined
        """
        ...

    def upload(self, key: str, data: IO[bytes]) -> None:
        """
        Store the content of a readable stream under key, replacing any existing object.

        Raises:
            BucketError: For upload failures
        """
        ...

    def delete(self, key: str) -> None:
        """
        Remove an object.

        Raises:
            ObjectNotFoundError: If object does not exist
            BucketError: For other failures
        """
        ...
