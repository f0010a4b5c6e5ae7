"""
Path safety utilities for thanos-blocks.

Bucket keys end up as local paths (filesystem buckets, downloads), so they are
validated to prevent directory traversal out of the bucket root or the
download destination.
"""
from __future__ import annotations

from pathlib import PurePosixPath


def safe_key(key: str) -> str:
    """
    Validate and normalize a bucket object key.

    This function enforces the following safety rules:
    - No empty strings or "." (the bucket root is not an object)
    - No absolute keys (starting with '/')
    - No parent directory references ('..' components)
    - No backslashes

    Args:
        key: Object key

    Returns:
        Normalized key

    Raises:
        ValueError: If key violates safety rules

    Examples:
        >>> safe_key("01ARZ3NDEKTSV4RRFFQ69G5FAV/chunks/000001")
        '01ARZ3NDEKTSV4RRFFQ69G5FAV/chunks/000001'

        >>> safe_key("../secrets")
        ValueError: unsafe key: ../secrets
    """
    rel = PurePosixPath(key)
    s = str(rel)
    if not s or s == ".":
        raise ValueError(f"unsafe key: {key}")
    if "\\" in s:
        raise ValueError(f"unsafe key: {key}")
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"unsafe key: {key}")
    return s


def safe_prefix(prefix: str) -> str:
    """
    Normalize a directory-like key prefix; "" (bucket root) is allowed.

    Raises:
        ValueError: If the non-empty prefix violates safe_key rules
    """
    stripped = prefix.strip("/")
    if not stripped:
        return ""
    return safe_key(stripped)


def safe_name(name: str) -> str:
    """
    Validate a single path element, e.g. the last element of a listed key.

    Raises:
        ValueError: If name is empty, "." or "..", or contains a separator
    """
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ValueError(f"unsafe name: {name}")
    return name
