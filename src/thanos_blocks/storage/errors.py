"""
Bucket error classes.

Provides a small taxonomy of errors raised by bucket implementations and the
recursive transfer helpers. Concrete buckets map SDK exceptions onto these so
callers handle errors the same way regardless of the backing store.
"""
from __future__ import annotations


class BucketError(OSError):
    """
    Base class for all bucket errors.

    Subclasses OSError so callers that already treat storage failures as I/O
    errors keep working.
    """
    pass


class ObjectNotFoundError(BucketError, FileNotFoundError):
    """
    Object does not exist in the bucket.

    Raised when:
    - get() or delete() is called for a missing key
    - SDK reports a missing blob (HTTP 404)
    """
    pass


class TransferCancelled(BucketError):
    """
    Transfer aborted because its TransferContext was cancelled or timed out.

    Raised by the transfer helpers before the next object operation starts;
    an object operation already in flight is allowed to finish.
    """
    pass


__all__ = [
    "BucketError",
    "ObjectNotFoundError",
    "TransferCancelled",
]
